from __future__ import annotations

import argparse
from datetime import date, datetime
import logging
import os
from pathlib import Path
from typing import Iterable, Optional, Protocol

from jadwalshalat.bimas_client import BimasClient
from jadwalshalat.cache_store import CacheStore
from jadwalshalat.config import AppConfig, ConfigError, ConfigLoader
from jadwalshalat.errors import InvalidDateFormat, JadwalShalatError
from jadwalshalat.logging_utils import LoggerFactory
from jadwalshalat.ranking import Clock, RankedEvent, Ranking, SystemClock, rank
from jadwalshalat.regions import RegionCatalog, RegionCatalogResolver, RegionSource
from jadwalshalat.schedule import ScheduleResolver, ScheduleSource

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


class PrayerSource(RegionSource, ScheduleSource, Protocol):
    """Anything that can fetch both the region catalog and monthly schedules."""


def main(
    argv: Optional[Iterable[str]] = None,
    *,
    source: Optional[PrayerSource] = None,
    clock: Optional[Clock] = None,
) -> int:
    args = _parse_args(argv)
    level = logging.DEBUG if args.verbose else logging.INFO
    try:
        config_path = Path(args.config) if args.config else None
        config = ConfigLoader(config_path=config_path).load()
    except ConfigError as exc:
        LoggerFactory.create("", level=level)
        logging.getLogger("jadwalshalat").error("Config error: %s", exc)
        return EXIT_USAGE

    LoggerFactory.create("", log_file=config.logging.file_path, level=level)
    logger = logging.getLogger("jadwalshalat")

    cache = CacheStore(Path(config.cache.directory).expanduser())
    if source is None:
        source = BimasClient(
            base_url=config.api.base_url,
            timeout_seconds=config.api.timeout_seconds,
        )
    clock = clock or SystemClock()

    province, regency = _resolve_location(args, config)
    if not args.list and (not province or not regency):
        logger.error(
            "Province and regency are required (--provinsi/--kabupaten or "
            "JADWAL_SHALAT_PROVINSI/JADWAL_SHALAT_KABUPATEN)"
        )
        return EXIT_USAGE

    try:
        now = clock.now()
        day = _parse_date(args.date) if args.date else now.date()
        catalog = RegionCatalogResolver(cache=cache, source=source).resolve()
        if args.list:
            _print_regions(catalog, args.provinsi)
            return EXIT_OK

        region = catalog.find(province, regency)
        schedule_day = ScheduleResolver(cache=cache, source=source).day_of(region, day)
        ranking = rank(schedule_day.events, day, now)
    except JadwalShalatError as exc:
        logger.error("%s", exc)
        return EXIT_FAILURE

    print(f"Jadwal Shalat {region.regency} {region.province} : {schedule_day.date_label}")
    if args.all:
        _print_all(ranking)
    else:
        _print_nearest(ranking)
    return EXIT_OK


def _resolve_location(args: argparse.Namespace, config: AppConfig) -> tuple[str, str]:
    province = (
        args.provinsi
        or os.getenv("JADWAL_SHALAT_PROVINSI")
        or config.location.province
    )
    regency = (
        args.kabupaten
        or os.getenv("JADWAL_SHALAT_KABUPATEN")
        or config.location.regency
    )
    return province, regency


def _parse_date(raw: str) -> date:
    try:
        return datetime.strptime(raw, "%Y-%m-%d").date()
    except ValueError as exc:
        raise InvalidDateFormat(f"Date must be YYYY-MM-DD, got {raw!r}") from exc


def _print_regions(catalog: RegionCatalog, province: Optional[str]) -> None:
    for region in catalog.regencies(province):
        print(f"Kabupaten: {region.regency}, Provinsi: {region.province}")


def _print_nearest(ranking: Ranking) -> None:
    previous = ranking.nearest_past
    upcoming = ranking.nearest_future
    print(f"Sebelumnya : {_describe(previous) if previous else '-'}")
    print(f"Berikutnya : {_describe(upcoming) if upcoming else '-'}")


def _print_all(ranking: Ranking) -> None:
    for event in ranking.events:
        print(f"{event.name:<10} {event.time_of_day:>5}  {_relative(event)}")


def _describe(event: RankedEvent) -> str:
    return f"{event.name} {event.time_of_day} ({_relative(event)})"


def _relative(event: RankedEvent) -> str:
    minutes = event.signed_offset_minutes
    if minutes < 0:
        return f"{-minutes} menit yang lalu"
    if minutes == 0:
        return "sekarang"
    return f"{minutes} menit lagi"


def _parse_args(argv: Optional[Iterable[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="jadwal-shalat",
        description="Prayer times for Indonesian regions from Bimas Islam",
    )
    parser.add_argument("--date", help="Day to show, YYYY-MM-DD (default: today)")
    parser.add_argument("--provinsi", help="Province name, e.g. 'DKI JAKARTA'")
    parser.add_argument("--kabupaten", help="Regency or city name, e.g. 'KOTA JAKARTA'")
    parser.add_argument(
        "--list",
        action="store_true",
        help="List known regions (filtered by --provinsi when given)",
    )
    parser.add_argument(
        "--all",
        action="store_true",
        help="Show every event of the day instead of only the nearest ones",
    )
    parser.add_argument("--config", help="Path to config.yml")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(list(argv) if argv is not None else None)


if __name__ == "__main__":
    raise SystemExit(main())
