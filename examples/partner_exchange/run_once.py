"""
Run one exchange cycle for the demo project.
"""

from __future__ import annotations

import sys
from pathlib import Path

from interchange import ExchangeSettings, RunCoordinator, RunMode, load_config, setup_logging_from_config


def main() -> None:
    project_dir = Path(__file__).parent
    env = sys.argv[1] if len(sys.argv) > 1 else None
    config = load_config(project_dir, env=env)
    setup_logging_from_config(config.data, project_dir=project_dir)
    settings = ExchangeSettings.from_config(config, project_dir=project_dir)

    with RunCoordinator(settings) as coordinator:
        report = coordinator.run(RunMode.ALL)

    print(report.as_dict())
    if not report.ok:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
