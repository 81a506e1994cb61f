import argparse
import logging
import sys
from pathlib import Path

from sqlmodel import Session, select

import config
from database import engine, create_db_and_tables
from models import Name

logger = logging.getLogger("name_picker.import")

# Starter deck for a fresh database
DEFAULT_NAMES = [
    {"name": "Smith", "origin": "English", "meaning": "Metalworker", "popularity": 95},
    {"name": "Johnson", "origin": "English", "meaning": "Son of John", "popularity": 90},
    {"name": "Jones", "origin": "Welsh", "meaning": "Son of John", "popularity": 88},
    {"name": "Williams", "origin": "English", "meaning": "Son of William", "popularity": 85},
    {"name": "Davis", "origin": "Welsh", "meaning": "Son of David", "popularity": 82},
    {"name": "Brown", "origin": "English", "meaning": "Color name", "popularity": 80},
    {"name": "Miller", "origin": "English", "meaning": "Grain grinder", "popularity": 78},
    {"name": "Garcia", "origin": "Spanish", "meaning": "Bear", "popularity": 75},
]


class NameFileError(ValueError):
    pass


def parse_names(text: str) -> list:
    """One name per line; surrounding whitespace and blank lines are dropped."""
    return [line.strip() for line in text.splitlines() if line.strip()]


def read_name_file(path) -> list:
    path = Path(path)
    if path.suffix.lower() != ".txt":
        raise NameFileError("Please upload a .txt file.")
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise NameFileError(f"File not found: {path}")
    except UnicodeDecodeError:
        raise NameFileError(f"{path.name} is not a plain text file.")
    return parse_names(text)


def import_names(session: Session, entries) -> tuple:
    """
    Insert names that are not in the database yet.
    Entries are plain strings or dicts of Name fields. Returns (added, skipped).
    """
    added = 0
    skipped = 0
    for entry in entries:
        fields = {"name": entry} if isinstance(entry, str) else dict(entry)
        fields["name"] = fields["name"].strip()
        existing = session.exec(select(Name).where(Name.name == fields["name"])).first()
        if existing:
            skipped += 1
            continue
        session.add(Name(**fields))
        added += 1
    session.commit()
    return added, skipped


def seed_default_names(session: Session) -> int:
    if session.exec(select(Name)).first():
        return 0
    added, _ = import_names(session, DEFAULT_NAMES)
    logger.info("Seeded %d default names", added)
    return added


def main(argv=None):
    parser = argparse.ArgumentParser(description="Load candidate names straight into the database.")
    parser.add_argument("file", nargs="?", help=".txt file with one name per line")
    parser.add_argument("--defaults", action="store_true", help="load the built-in starter names")
    args = parser.parse_args(argv)
    config.setup_logging("INFO")

    if not args.file and not args.defaults:
        parser.error("give a file or --defaults")

    entries = list(DEFAULT_NAMES) if args.defaults else []
    if args.file:
        try:
            entries.extend(read_name_file(args.file))
        except NameFileError as exc:
            print(exc, file=sys.stderr)
            return 1

    create_db_and_tables()
    with Session(engine) as session:
        added, skipped = import_names(session, entries)
    print(f"Import complete! Added {added} names, skipped {skipped} already present.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
