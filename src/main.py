import argparse
import logging
from datetime import date
from config.settings import LOG_LEVEL, LOG_FORMAT
from database.db import init_db, SessionLocal
from database.repository import PayrollRepository
from processors.payroll_service import PayrollService
from utils.errors import PayrollError

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format=LOG_FORMAT
)
logger = logging.getLogger(__name__)


def parse_args(argv=None):
    today = date.today()
    parser = argparse.ArgumentParser(description="Generate monthly payrolls for a company")
    parser.add_argument("company_id", help="Company to generate payrolls for")
    parser.add_argument("--month", type=int, default=today.month)
    parser.add_argument("--year", type=int, default=today.year)
    parser.add_argument("--force", action="store_true", help="Regenerate unpaid payrolls of the period")
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point for monthly payroll generation"""
    args = parse_args(argv)
    logger.info("Starting payroll generation for %s %02d/%s", args.company_id, args.month, args.year)

    # Initialize database
    init_db()

    db = SessionLocal()
    try:
        service = PayrollService(PayrollRepository(db))
        results = service.generate_monthly_payroll(
            args.company_id, args.month, args.year, force_regenerate=args.force
        )
    except PayrollError as e:
        logger.error("Payroll generation failed: %s", e.message)
        return 1
    finally:
        db.close()

    print("=" * 60)
    print(f"Payroll {args.month:02d}/{args.year} for {args.company_id}")
    print("=" * 60)
    print(f"Created:     {len(results.success)}")
    print(f"Regenerated: {len(results.regenerated)}")
    print(f"Skipped:     {len(results.skipped)}")
    print(f"Failed:      {len(results.failed)}")
    for failure in results.failed:
        print(f"  - {failure['employee_id']} ({failure['employee_name']}): {failure['error']}")
    print("=" * 60)

    return 1 if results.failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
