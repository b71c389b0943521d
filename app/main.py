"""
Main entry point for the Delivery Inspection System.
Performs startup health checks before launching the UI.
"""

import sys
import subprocess
from pathlib import Path

from utils.logger import (
    setup_logger, print_banner, print_health_check_table,
    print_summary_panel
)
from utils.config import config
from src.database import InspectionRepository, health_check_database, init_database
from src.integrations import EmailDispatcher, OrderLookupService
from src.storage import get_storage

logger = setup_logger(__name__, level=config.log_level, component="MAIN")


def _record(health_results: dict, name: str, result) -> bool:
    status, details = result
    if status:
        logger.info(f"   ✓ {name}: {details}")
    else:
        logger.error(f"   ✗ {name}: {details}")
    health_results[name] = (status, details)
    return status


def startup_health_checks() -> bool:
    """
    Perform startup health checks.

    Returns:
        True if all checks pass, False otherwise
    """
    print_banner()

    logger.info("=" * 80)
    logger.info("DELIVERY INSPECTION SYSTEM - STARTUP HEALTH CHECKS")
    logger.info("=" * 80)

    all_healthy = True
    health_results = {}

    # ====================================================================
    # 1. Configuration Validation
    # ====================================================================
    logger.info("1. Checking configuration...")
    try:
        logger.info(f"   ✓ Environment: {config.environment}")
        logger.info(f"   ✓ Database Path: {config.database_path}")
        logger.info(f"   ✓ Storage Backend: {config.storage_backend}")
        logger.info(f"   ✓ Checklist: {config.get_checklist_path()}")
        logger.info(
            f"   ✓ Evidence limits: {config.max_photos_per_item} photos, "
            f"{config.max_videos_per_item} video, {config.max_file_size_mb} MB"
        )
        health_results["Configuration"] = (True, "All settings loaded")

    except Exception as e:
        logger.error(f"   ✗ Configuration validation failed: {e}")
        health_results["Configuration"] = (False, f"Error: {e}")
        all_healthy = False

    # ====================================================================
    # 2. File System Checks
    # ====================================================================
    logger.info("2. Checking file system...")
    try:
        config.get_upload_dir()
        config.get_report_dir()
        config.get_log_dir()
        config.get_draft_dir()

        logger.info("   ✓ Upload directory: writable")
        logger.info("   ✓ Report directory: writable")
        logger.info("   ✓ Log directory: writable")
        logger.info("   ✓ Draft directory: writable")

        health_results["File System"] = (True, "All directories accessible")

    except Exception as e:
        logger.error(f"   ✗ File system check failed: {e}")
        health_results["File System"] = (False, f"Error: {e}")
        all_healthy = False

    # ====================================================================
    # 3. Database Health Check
    # ====================================================================
    logger.info("3. Checking database...")
    try:
        if init_database():
            if health_check_database():
                count = len(InspectionRepository().list_inspections(limit=1000))

                logger.info(f"   ✓ Database initialized: {count} records")
                health_results["Database"] = (True, f"{count} inspection records")
            else:
                logger.error("   ✗ Database connection failed")
                health_results["Database"] = (False, "Connection failed")
                all_healthy = False
        else:
            logger.error("   ✗ Database initialization failed")
            health_results["Database"] = (False, "Initialization failed")
            all_healthy = False

    except Exception as e:
        logger.error(f"   ✗ Database check error: {e}")
        health_results["Database"] = (False, f"Error: {e}")
        all_healthy = False

    # ====================================================================
    # 4. External Services
    # ====================================================================
    logger.info("4. Checking external services...")
    checks = {
        "Storage": lambda: get_storage().health_check(),
        "Email": lambda: EmailDispatcher().health_check(),
        "Order API": lambda: OrderLookupService().health_check(),
    }
    for name, check in checks.items():
        try:
            if not _record(health_results, name, check()):
                all_healthy = False
        except Exception as e:
            logger.error(f"   ✗ {name} check error: {e}")
            health_results[name] = (False, f"Error: {e}")
            all_healthy = False

    # ====================================================================
    # Final Status
    # ====================================================================
    logger.info("=" * 80)

    if all_healthy:
        logger.info("✓ ALL HEALTH CHECKS PASSED - SYSTEM READY")
        print_health_check_table(health_results)

        print_summary_panel(
            "System Configuration",
            {
                "Environment": config.environment.upper(),
                "Database": config.database_path,
                "Storage": config.storage_backend,
                "Email": "SendGrid" if config.email_enabled else "Log only",
                "Order API": "Enabled" if config.order_api_enabled else "Placeholder data",
            },
            style="green"
        )
    else:
        logger.error("✗ SOME HEALTH CHECKS FAILED - SYSTEM MAY NOT FUNCTION PROPERLY")
        print_health_check_table(health_results)

        print_summary_panel(
            "⚠️  Health Check Failures",
            {
                "Status": "FAILED",
                "Action": "Please fix the errors above before using the system"
            },
            style="red"
        )

    logger.info("=" * 80)

    return all_healthy


def main():
    """Main entry point."""
    logger.info("Starting Delivery Inspection System...")

    if config.skip_health_checks:
        logger.warning("⚠️  Health checks SKIPPED (SKIP_HEALTH_CHECKS=true)")
    else:
        if not startup_health_checks():
            logger.error("❌ Startup health checks failed.")
            logger.error("   Please fix the errors above and try again.")
            logger.error("   To bypass health checks (NOT RECOMMENDED), set:")
            logger.error("   SKIP_HEALTH_CHECKS=true in .env")
            sys.exit(1)

    logger.info("🚀 Launching Streamlit UI...")

    ui_path = Path(__file__).parent / "ui.py"

    if not ui_path.exists():
        logger.error(f"❌ UI file not found: {ui_path}")
        sys.exit(1)

    cmd = [
        sys.executable,
        "-m",
        "streamlit",
        "run",
        str(ui_path),
        "--server.port=8501",
        "--server.address=localhost",
        "--browser.gatherUsageStats=false"
    ]

    try:
        logger.info(f"   Command: {' '.join(cmd)}")
        logger.info("   Access the UI at: http://localhost:8501")
        logger.info("   Press Ctrl+C to stop the server")

        rc = subprocess.run(cmd).returncode
        sys.exit(rc)

    except KeyboardInterrupt:
        logger.info("Shutting down gracefully...")
        sys.exit(0)

    except Exception as e:
        logger.error(f"❌ Failed to launch Streamlit: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
