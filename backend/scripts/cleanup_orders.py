"""Cancel every gateway order still waiting for payment.

Same action as ``POST /api/orders/cleanup-pending``; already finalized orders
are never touched.

Usage:
    cd backend
    python scripts/cleanup_orders.py
"""

import logging
import os
import sys

# Ensure the backend package is importable when run from a checkout
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from hotel_api.db.session import SessionLocal
from hotel_api.services.order_cleanup_service import OrderCleanupService


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    db = SessionLocal()
    try:
        modified = OrderCleanupService(db).cancel_all_pending_payments()
    finally:
        db.close()
    print(f"Cleanup complete. Modified {modified} orders.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
