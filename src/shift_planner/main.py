"""
Main Entry Point for Shift Planning System

Loads (or seeds) the persisted plan, makes sure every week has a schedule
and an active version, and reports the current week.
"""

import sys
import logging
import traceback
from pathlib import Path
from datetime import datetime

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from shift_planner.calendar_utils import SHIFT_TYPES, week_label
from shift_planner.data_manager import DataManager
from shift_planner.version_manager import VersionManager
from shift_planner.scheduler_logic import ShiftScheduler
from shift_planner.plan_generator import PlanGenerator
from shift_planner.reporting import ExportManager


def setup_logging():
    """Setup application logging"""
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    log_file = log_dir / f"shift_planner_{datetime.now().strftime('%Y%m%d')}.log"

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stdout)
        ]
    )

    return logging.getLogger(__name__)


def check_dependencies():
    """Check if all required dependencies are available"""
    required_modules = [
        'pandas',
        'openpyxl',
        'reportlab'
    ]

    missing_modules = []

    for module in required_modules:
        try:
            __import__(module)
        except ImportError:
            missing_modules.append(module)

    if missing_modules:
        error_msg = f"Missing required dependencies: {', '.join(missing_modules)}\n"
        error_msg += "Please install them using: pip install -e ."
        raise ImportError(error_msg)


def handle_exception(exc_type, exc_value, exc_traceback):
    """Global exception handler"""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return

    logger = logging.getLogger(__name__)
    logger.error(
        "Uncaught exception",
        exc_info=(exc_type, exc_value, exc_traceback)
    )


class ShiftPlannerApp:
    """Main application class"""

    def __init__(self, data_file: str = None):
        self.logger = logging.getLogger(__name__)
        self.data_file = data_file
        self.data_manager = None
        self.version_manager = None
        self.scheduler = None
        self.plan_generator = None
        self.export_manager = None

    def initialize(self):
        """Initialize application components"""
        try:
            self.logger.info("Initializing Shift Planner Application")

            check_dependencies()
            self.logger.info("All dependencies available")

            if self.data_file is None:
                if getattr(sys, 'frozen', False):
                    # Running as a bundle (e.g. PyInstaller)
                    base_path = Path(sys.executable).parent
                else:
                    base_path = Path(__file__).parent.parent

                data_dir = base_path / "data"
                data_dir.mkdir(exist_ok=True)
                self.logger.info(f"Persistent data directory: {data_dir}")
                self.data_file = str(data_dir / "shift_planner_data.json")

            self.data_manager = DataManager(self.data_file)
            self.logger.info("Data manager initialized with persistent storage")

            self.version_manager = VersionManager(self.data_manager)
            self.scheduler = ShiftScheduler(self.data_manager, self.version_manager)
            self.plan_generator = PlanGenerator(self.data_manager, self.version_manager.lock_manager)
            self.logger.info("Scheduler initialized")

            self.export_manager = ExportManager(self.data_manager, self.version_manager)
            self.logger.info("Export manager initialized")

            return True

        except Exception as e:
            self.logger.error(f"Failed to initialize application: {e}")
            self.logger.error(traceback.format_exc())
            return False

    def ensure_schedule(self):
        """Generate the schedule on first start and give every week an active version"""
        state = self.data_manager.state
        if state.week_dates and not state.schedule:
            result = self.scheduler.generate_schedule()
            self.logger.info(result.message)
            return

        snapshot = state.clone()
        created = [i for i in range(self.data_manager.week_count())
                   if self.version_manager.ensure_initial_version(i)]
        if created:
            self.logger.info(f"Created initial versions for {len(created)} week(s)")
            self.data_manager.commit(snapshot)

    def log_current_week(self):
        """Log the team assignment of the current week"""
        week_index = self.data_manager.state.current_week
        dates = self.data_manager.get_week_dates(week_index)
        if not dates:
            self.logger.info("No weeks planned yet")
            return

        active = self.version_manager.get_active_version(week_index)
        status = "LOCKED" if self.version_manager.lock_manager.is_locked(week_index) else "EDITABLE"
        self.logger.info(f"{week_label(dates)} | {status} | Version: {active[1].name if active else 'Default'}")

        week = self.data_manager.get_week_schedule(week_index) or {}
        monday = week.get("Monday")
        if monday:
            teams = ", ".join(f"{s}: Team {monday.slot(s).team}" for s in SHIFT_TYPES)
            self.logger.info(f"Teams this week - {teams}")

    def run(self):
        """Run the main application"""
        try:
            if not self.initialize():
                self.logger.error("Failed to initialize Shift Planner Application. "
                                  "Check the logs directory for details.")
                return False

            self.ensure_schedule()
            self.log_current_week()

            self.logger.info("Application finished normally")
            return True

        except Exception as e:
            self.logger.error(f"Application error: {e}")
            self.logger.error(traceback.format_exc())
            return False

        finally:
            self.cleanup()

    def cleanup(self):
        """Cleanup application resources"""
        try:
            if self.data_manager:
                self.data_manager.save_data()
                self.logger.info("Data saved successfully")
        except Exception as e:
            self.logger.error(f"Error during cleanup: {e}")


def main():
    """Main entry point"""
    sys.excepthook = handle_exception

    logger = setup_logging()
    logger.info("=" * 50)
    logger.info("Starting Shift Planner Application")
    logger.info("=" * 50)

    app = ShiftPlannerApp()
    success = app.run()

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
