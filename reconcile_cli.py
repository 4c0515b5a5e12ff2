# reconcile_cli.py

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from src.core.cache import PropertyCache
from src.core.log import configure_logging
from src.core.merge import InvalidListingUrlError
from src.core.valuation import format_arv_details
from src.inputs.settings import SettingsLoader
from src.tools.property_reconcile import build_merger, reconcile_property

logger = logging.getLogger("src.cli")


def main() -> int:
    p = argparse.ArgumentParser(description="Reconcile a property listing into one record")
    p.add_argument("urls", nargs="+", help="Listing URL(s)")
    p.add_argument("--config", type=str, default=None, help="Settings JSON (see src/inputs/settings.py)")
    p.add_argument("--valuation", type=int, choices=(0, 1), default=1, help="Query the valuation provider")
    p.add_argument("--estimates", type=int, choices=(0, 1), default=1, help="Fill gaps with rules of thumb")
    p.add_argument("--arv", type=int, choices=(0, 1), default=1)
    p.add_argument("--force-refresh", type=int, choices=(0, 1), default=0)
    p.add_argument("--renovation", choices=("cosmetic", "moderate", "extensive", "gut"), default=None)
    p.add_argument("--strategy", choices=("flip", "brrrr"), default=None)
    p.add_argument("--snapshot", type=str, default=None, help="Cache snapshot to load before and save after")
    p.add_argument("--json", type=int, choices=(0, 1), default=0, help="Print full JSON instead of a summary")

    args = p.parse_args()

    settings = SettingsLoader().load(args.config)
    configure_logging(settings.log_level, settings.log_file)

    cache = PropertyCache(settings.cache)
    snapshot = Path(args.snapshot) if args.snapshot else None
    if snapshot and snapshot.exists():
        cache.import_snapshot(snapshot.read_text(encoding="utf-8"))

    merger = build_merger(settings, cache=cache)
    options: dict[str, object] = {
        "include_valuation_api": bool(args.valuation),
        "include_estimates": bool(args.estimates),
        "include_arv": bool(args.arv),
        "force_refresh": bool(args.force_refresh),
    }
    if args.renovation:
        options["renovation_level"] = args.renovation
    if args.strategy:
        options["strategy"] = args.strategy

    status = 0
    for url in args.urls:
        try:
            result = reconcile_property(url, options=options, merger=merger)
        except InvalidListingUrlError as e:
            print(f"error: {e}")
            status = 2
            continue

        if args.json:
            print(result.model_dump_json(indent=2))
            continue

        meta = result.metadata
        print(f"{meta.platform}: {meta.address}{' (cached)' if meta.cached else ''}")
        print(f"  {result.record.summary()}")
        print(
            f"  sources: scraped={meta.field_sources.scraped} "
            f"rentcast={meta.field_sources.rentcast} estimated={meta.field_sources.estimated}"
        )
        if meta.completeness.missing_fields:
            print(f"  missing: {', '.join(meta.completeness.missing_fields)}")
        if result.record.arv is not None:
            print(f"  arv: {format_arv_details(result.record.arv)}")
        if meta.scrape_error:
            print(f"  scrape error: {meta.scrape_error}")
        for err in meta.valuation_errors:
            print(f"  valuation: {err}")

    if snapshot:
        snapshot.parent.mkdir(parents=True, exist_ok=True)
        snapshot.write_text(cache.export_snapshot(), encoding="utf-8")
        logger.info("[CLI] Saved cache snapshot to %s", snapshot)

    return status


if __name__ == "__main__":
    raise SystemExit(main())
