"""Entry point: run the tab manager, or export/import the stored state."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from comanda.catalog import ProductCatalog
from comanda.config import DB_PATH, LOG_LEVEL, LOG_PATH
from comanda.errors import LedgerError
from comanda.ledger import OrderLedger
from comanda.persistence import SqliteCollectionStore
from comanda.transfer import dump_state, load_state

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="comanda", description="Restaurant tab manager.")
    p.add_argument("--db", default=DB_PATH, help=f"SQLite file holding the collections (default {DB_PATH})")
    group = p.add_mutually_exclusive_group()
    group.add_argument("--export", metavar="FILE", help="Write open orders, history and products to FILE and exit")
    group.add_argument("--import", dest="import_file", metavar="FILE", help="Replace all state with FILE and exit")
    return p


def configure_logging() -> None:
    # The TUI owns the terminal, so logs go to a file.
    Path(LOG_PATH).parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=LOG_PATH,
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()
    store = SqliteCollectionStore(args.db)

    if args.export:
        dump_state(store, args.export)
        print(f"Estado exportado para {args.export}")
        return 0

    if args.import_file:
        try:
            load_state(store, args.import_file)
        except (LedgerError, OSError) as exc:
            logger.error("import of %s failed: %s", args.import_file, exc)
            print(f"Importação falhou: {exc}", file=sys.stderr)
            return 1
        print(f"Estado importado de {args.import_file}")
        return 0

    from comanda.comanda_app import ComandaApp

    catalog = ProductCatalog(store)
    ledger = OrderLedger(store, catalog)
    ComandaApp(ledger, catalog).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
