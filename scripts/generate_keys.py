"""Generate the database key environment value for the ledger."""

from __future__ import annotations

import argparse
import secrets
from pathlib import Path

from insurance_ledger.core.config import DEFAULT_DB_KEY_ENV


def _render_line(name: str, value: str, env_format: str) -> str:
    if env_format == "powershell":
        return f"$env:{name}='{value}'"
    if env_format == "shell-export":
        return f"export {name}='{value}'"
    return f"{name}='{value}'"


def main() -> None:
    """Generate a key and optionally write/print the env line."""
    parser = argparse.ArgumentParser(description="Generate the ledger database key.")
    parser.add_argument(
        "--write-env",
        default=None,
        help="Path to write the generated key. Omit to skip file output.",
    )
    parser.add_argument(
        "--format",
        choices=["shell", "shell-export", "powershell"],
        default="shell",
        help="Output format for written/printed lines.",
    )
    parser.add_argument("--stdout", action="store_true", help="Also print the line to stdout.")
    parser.add_argument("--force", action="store_true", help="Overwrite existing env file.")
    args = parser.parse_args()

    line = _render_line(DEFAULT_DB_KEY_ENV, secrets.token_urlsafe(48), args.format)

    if args.write_env:
        target_path = Path(args.write_env)
        if target_path.exists() and not args.force:
            print(f"[INFO] key file already exists: {target_path}")
            return
        target_path.parent.mkdir(parents=True, exist_ok=True)
        target_path.write_text(line + "\n", encoding="utf-8")
        print(f"[INFO] key file written: {target_path}")

    if args.stdout:
        print(line)


if __name__ == "__main__":
    main()
