#!/usr/bin/env python3
"""
Timesheet Agent
Command-line interface for generating, archiving and exporting timesheets
"""

import argparse
import logging
import sys
from pathlib import Path

from .config_manager import update_config_files, ConfigurationError
from .exporter import ExportError
from .generator import GenerationError
from .manager import TimesheetManager
from .models import DISTRIBUTION_MODES, SCHEDULE_TYPES
from .sources import SourceError, fetch_git_log
from .storage import StorageError

# Configure basic logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def parse_arguments(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="Generate timesheets from tasks and a work calendar",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Generate a timesheet from project.json (default action)
  ts-agent

  # Generate for a specific range with priority-first distribution
  ts-agent --start 2025-06-01 --end 2025-06-30 --mode priority

  # Generate and export to Excel
  ts-agent --export xlsx --output june.xlsx

  # Add git history as reference material for the AI model
  ts-agent --git-log commits.txt

  # Configure and test an LLM provider
  ts-agent --provider deepseek --api-key sk-... --test-connection

  # List archived timesheets
  ts-agent --list-results

  # Update configuration files
  ts-agent --update-config
        """
    )

    parser.add_argument(
        '--config',
        type=str,
        default='config.json',
        help='Configuration file path (default: config.json)'
    )

    parser.add_argument(
        '--project',
        type=str,
        default='project.json',
        help='Project file with tasks and working hours (default: project.json)'
    )

    parser.add_argument(
        '--update-config',
        action='store_true',
        help='Merge new default settings into your configuration files'
    )

    parser.add_argument(
        '--start',
        type=str,
        help='Start date (YYYY-MM-DD), overrides the project file'
    )

    parser.add_argument(
        '--end',
        type=str,
        help='End date (YYYY-MM-DD), overrides the project file'
    )

    parser.add_argument(
        '--mode',
        choices=DISTRIBUTION_MODES,
        help='Distribution mode, overrides the project file'
    )

    parser.add_argument(
        '--schedule',
        choices=SCHEDULE_TYPES,
        help='Rest schedule, overrides the project file'
    )

    parser.add_argument(
        '--git-log',
        type=str,
        help='File with git log output to use as reference material'
    )

    parser.add_argument(
        '--fetch-git',
        nargs=2,
        metavar=('REPO_URL', 'AUTHOR'),
        help='Clone a repository and use the author\'s last 30 days of commits as reference material'
    )

    parser.add_argument(
        '--attach',
        action='append',
        default=[],
        help='Text file to use as reference material (repeatable)'
    )

    parser.add_argument(
        '--export',
        choices=['xlsx', 'csv', 'txt'],
        help='Export the generated timesheet'
    )

    parser.add_argument(
        '--output',
        type=str,
        help='Export file path (default: timestamped file in export_dir)'
    )

    parser.add_argument(
        '--list-results',
        action='store_true',
        help='List archived timesheets'
    )

    parser.add_argument(
        '--provider',
        type=str,
        help='LLM provider to configure and activate (e.g. openai, deepseek)'
    )

    parser.add_argument(
        '--api-key',
        type=str,
        help='API key for --provider'
    )

    parser.add_argument(
        '--model',
        type=str,
        help='Model identifier for --provider'
    )

    parser.add_argument(
        '--base-url',
        type=str,
        help='Base URL for --provider'
    )

    parser.add_argument(
        '--test-connection',
        action='store_true',
        help='Test the connection to the active LLM provider'
    )

    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point"""
    args = parse_arguments(argv)

    # Handle configuration updates first
    if args.update_config or not Path(args.config).exists():
        try:
            update_config_files(args.config, args.project)
            if args.update_config:
                logger.info("Configuration files updated successfully")
                return
        except Exception as e:
            logger.error(f"Failed to update configuration files: {e}")
            sys.exit(1)

    # Initialize manager
    try:
        manager = TimesheetManager(args.config)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        logger.error("Please run 'ts-agent --update-config' to create configuration files")
        sys.exit(1)

    try:
        if args.provider:
            if not args.api_key:
                logger.error("--api-key is required with --provider")
                sys.exit(1)
            manager.configure_model(args.provider, args.api_key, args.model, args.base_url)

        if args.test_connection:
            success = manager.test_connection()
            sys.exit(0 if success else 1)

        if args.list_results:
            lines = manager.list_results()
            if not lines:
                print("No archived timesheets")
            for line in lines:
                print(line)
            return

        if args.provider:
            return

        project = manager.load_project(args.project)
        if args.start:
            project.start_date = args.start
        if args.end:
            project.end_date = args.end
        if args.mode:
            project.distribution_mode = args.mode
        if args.schedule:
            project.working_hours.schedule_type = args.schedule

        git_log_text = None
        if args.fetch_git:
            repo_url, author = args.fetch_git
            git_log_text = fetch_git_log(repo_url, author) or None
        manager.add_reference_material(project, args.git_log, args.attach, git_log_text)

        logger.info("Generating timesheet...")
        result = manager.generate(project)
        print(manager.preview(result))
        print(f"Total: {result.summary.total_hours:.2f}h over {result.summary.total_days} days "
              f"({result.summary.average_hours_per_day:.2f}h/day)")

        if args.export:
            path = manager.export(args.export, args.output, result)
            print(f"Exported to {path}")

    except (ConfigurationError, GenerationError, ExportError, StorageError, SourceError) as e:
        logger.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
