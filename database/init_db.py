import os
import sys

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
if BASE_DIR not in sys.path:
    sys.path.insert(0, BASE_DIR)

from supply_dashboard import create_app
from supply_dashboard.db import get_db, init_db
from supply_dashboard.demo_data import seed_demo_data
from supply_dashboard.ui_strings import success_message


app = create_app()


if __name__ == "__main__":
    with app.app_context():
        init_db()
        if os.environ.get("SEED_DEMO_DATA", "0").strip().lower() in {"1", "true", "yes", "on"}:
            counts = seed_demo_data(get_db())
            print(f"Demo data loaded: {counts}")
    print(success_message("schema_ready"))
