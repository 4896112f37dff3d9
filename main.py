"""
otpbridge – entry point.

Usage
-----
    python main.py --add "otpauth-migration://offline?data=..."
    python main.py               # print every code
    python main.py --acc NAME    # print one code
    python main.py --clean
    python main.py --tray

Or, if installed as a package:
    otpbridge ...
"""

import argparse
import getpass
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from core.config import Settings
from core.errors import InvalidPasswordError, OtpError
from core.vault import Vault
from storage.database import ParameterDatabase

logger = logging.getLogger("otpbridge")


# ── Logging setup ─────────────────────────────────────────────────────────────

def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    # Keep key handling quiet even in verbose mode
    logging.getLogger("storage.encryption").setLevel(logging.WARNING)


# ── Bootstrap ─────────────────────────────────────────────────────────────────

def _prompt_password(db: ParameterDatabase) -> str:
    if db.has_master_password():
        return getpass.getpass("Master password: ")
    password = getpass.getpass("Create master password: ")
    if password != getpass.getpass("Confirm master password: "):
        raise InvalidPasswordError("Passwords do not match.")
    return password


def open_vault(settings: Settings, password: Optional[str] = None) -> ParameterDatabase:
    """Open and unlock the parameter database described by ``settings``."""
    db = ParameterDatabase(settings.db_path)
    try:
        if password is None:
            password = settings.password or _prompt_password(db)
        db.unlock_with_password(password)
    except BaseException:
        db.close()
        raise
    return db


# ── Modes ─────────────────────────────────────────────────────────────────────

def _print_all(vault: Vault) -> None:
    for i, (param, result) in enumerate(vault.codes(), start=1):
        print(f"{i}.\t{param.name}:\t{result.code}")


def _print_one(vault: Vault, name: str) -> None:
    print(vault.code_for(name).code)


def _add(vault: Vault, link: str) -> None:
    payload = vault.add_link(link)
    for param in payload.parameters:
        print(f"added {param.label} ({param.otp_type.value}, {param.algorithm.value})")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="otpbridge",
        description="Import Google Authenticator exports and generate OTP codes.",
    )
    parser.add_argument(
        "--add", metavar="LINK",
        help='add OTPs from a link like "otpauth-migration://offline?data=..."',
    )
    parser.add_argument("--clean", action="store_true", help="remove every stored OTP")
    parser.add_argument("--gen", action="store_true", help="print every OTP (default)")
    parser.add_argument("--acc", metavar="NAME", help="print the OTP for a single account")
    parser.add_argument("--tray", action="store_true", help="run in the system tray")
    parser.add_argument("--db", metavar="PATH", help="database file (overrides OTPBRIDGE_DB)")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


# ── Main ──────────────────────────────────────────────────────────────────────

def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = Settings.from_env()
    except OtpError as exc:
        print(f"failed to run otpbridge: {exc}", file=sys.stderr)
        return 1
    if args.db:
        settings = replace(settings, db_path=Path(args.db).expanduser())
    _setup_logging("DEBUG" if args.verbose else settings.log_level)
    logger.debug("Using database %s", settings.db_path)

    try:
        if args.tray:
            from ui.tray import run_tray

            return run_tray(settings)

        db = open_vault(settings)
        try:
            vault = Vault(db)
            if args.clean:
                print(f"removed {vault.clean()} OTP(s)")
            elif args.add:
                _add(vault, args.add)
            elif args.acc:
                _print_one(vault, args.acc)
            else:
                _print_all(vault)
        finally:
            db.close()
    except OtpError as exc:
        print(f"failed to run otpbridge: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
