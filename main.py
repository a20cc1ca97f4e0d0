import importlib
import sys

JOBS = [
    "discover_venues",
    "import_venues",
    "export_venues",
    "validate_booking_urls",
    "repair_booking_urls",
    "apply_booking_fixes",
    "combine_csvs",
    "report_duplicates",
    "geocode_venues",
    "update_venue_descriptions",
    "guess_missing_sports",
    "delete_venues",
]


def main(argv=None) -> int:
    """Dispatch `python main.py <job> [args...]` to workflows.<job>.main."""
    argv = sys.argv[1:] if argv is None else argv
    if not argv or argv[0] not in JOBS:
        print("Usage: python main.py <job> [args...]")
        print("Jobs: " + ", ".join(JOBS))
        return 1

    module = importlib.import_module(f"workflows.{argv[0]}")
    return module.main(argv[1:])


if __name__ == "__main__":
    sys.exit(main())
