"""
Command-line export/import of the photo journal.

Examples:
  python -m src.backend.cli export
  python -m src.backend.cli export --out /tmp/journal.zip
  python -m src.backend.cli import /tmp/journal.zip --mode overwrite
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .runtime import create_service, default_config_path, default_root
from .settings.store import SettingsStore
from .transfer.models import ImportMode


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="photo-journal-archive", description="Export or import the photo journal")
    p.add_argument("--root", default="", help="Directory holding data/ (default: source checkout, else current directory)")
    p.add_argument("--config", default="", help="Settings file (default: <root>/data/config.json)")
    p.add_argument("-v", "--verbose", action="store_true", help="Log debug output")

    sub = p.add_subparsers(dest="command", required=True)

    exp = sub.add_parser("export", help="Write all entries and photos to one archive")
    exp.add_argument("--out", default="", help="Archive path (default: export dir / photojournal_export_<millis>.zip)")

    imp = sub.add_parser("import", help="Load entries and photos from an archive")
    imp.add_argument("archive", help="Archive to import")
    imp.add_argument(
        "--mode",
        choices=[m.value for m in ImportMode],
        default=ImportMode.ADD.value,
        help="add: keep existing entries (default); overwrite: delete them first",
    )
    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    repo_root = Path(args.root).expanduser().resolve() if args.root else default_root()
    config_path = Path(args.config).expanduser() if args.config else default_config_path(repo_root)
    service = create_service(settings_store=SettingsStore(path=config_path), repo_root=repo_root)

    if args.command == "export":
        result = service.export_journal(args.out or None)
        if not result.success:
            print(result.error, file=sys.stderr)
            return 1
        print(result.file_path)
        return 0

    result = service.import_journal(Path(args.archive).expanduser(), ImportMode(args.mode))
    if not result.success:
        print(result.error, file=sys.stderr)
        return 1
    print(f"Imported {result.entries_imported} entries, {result.photos_imported} photos")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
