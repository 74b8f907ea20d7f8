import sys
import os
import logging

# Add the parent directory to the path so we can import rostering
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rostering.exceptions import SettingsFileError
from rostering.logger import configure_logging
from rostering.models import ScheduleInput
from rostering.output_formatter import conflict_report, daily_coverage, staff_statistics
from rostering.solver import generate_schedule
from rostering.utils import load_settings, read_yaml

DEFAULT_SCENARIO = "data/sample_scenario.yml"
DEFAULT_SETTINGS = "data/engine_settings.yml"


def main():
    scenario_path = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_SCENARIO
    settings_path = sys.argv[2] if len(sys.argv) > 2 else DEFAULT_SETTINGS
    configure_logging(logging.DEBUG if os.environ.get("ROTA_DEBUG") else logging.INFO)

    try:
        problem = ScheduleInput.model_validate(read_yaml(scenario_path))
        settings = load_settings(settings_path)
    except SettingsFileError as e:
        raise SystemExit(str(e))

    result = generate_schedule(problem, settings)

    stats = staff_statistics(result.schedules, problem.staff, problem.shift_types,
                             problem.duty_types, problem.start_date, problem.end_date, settings)
    coverage = daily_coverage(result.schedules, problem.shift_types,
                              problem.start_date, problem.end_date, settings)
    report = conflict_report(result.conflicts)

    print(f"\n=== Workload {problem.start_date}..{problem.end_date} ===")
    print(stats.to_string())
    print("\n=== Daily coverage ===")
    print(coverage.to_string())
    print(f"\nConflicts: {report['errors']} errors, {report['warnings']} warnings")
    for conflict_type, count in sorted(report["by_type"].items()):
        print(f"  {conflict_type}: {count}")

    if report["blocking"]:
        sys.exit(1)


if __name__ == "__main__":
    main()
