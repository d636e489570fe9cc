"""
Schema setup script for the Induction Planner.

This script creates the planner tables and, with --seed, loads a small sample
fleet so the API can be exercised locally.

Database connection is configured the same way as the service:
- DATABASE_URL: Full connection string (if provided, other DB_* variables are ignored)
- DB_USER, DB_PASSWORD, DB_HOST, DB_PORT, DB_NAME
"""
import argparse
import asyncio
from datetime import date, datetime, timedelta, timezone

import sqlalchemy as sa

from induction_planner.config import Settings
from induction_planner.services.fleet_store import FleetStore
from induction_planner.services.tables import (
    fitness_certificates, job_cards, kpi_metrics, metadata, system_config, trainsets
)

SAMPLE_FLEET_SIZE = 25
CERTIFICATE_TYPES = ["rolling_stock", "signalling", "telecom"]


def sample_rows(today: date):
    """Deterministic sample fleet with a mix of healthy and blocked trainsets."""
    now = datetime.now(timezone.utc)
    trains, certs, cards, kpis = [], [], [], []

    for i in range(1, SAMPLE_FLEET_SIZE + 1):
        train_id = f"ts-{i:02d}"
        trains.append({
            "id": train_id,
            "number": f"KM-{i:03d}",
            "status": "maintenance" if i % 9 == 0 else "ready",
            "bay_position": i,
            "mileage": 15000 + i * 1700,
            "last_cleaning": now - timedelta(days=i % 6),
            "branding_priority": (i % 10) + 1,
            "availability_percentage": 70 + (i * 7) % 31,
        })
        for j, cert_type in enumerate(CERTIFICATE_TYPES):
            # every seventh trainset carries an expired signalling certificate
            expired = i % 7 == 0 and cert_type == "signalling"
            certs.append({
                "id": f"{train_id}-cert-{j}",
                "trainset_id": train_id,
                "certificate_type": cert_type,
                "issue_date": today - timedelta(days=300),
                "expiry_date": today - timedelta(days=1) if expired else today + timedelta(days=5 + i * 3 + j),
            })
        if i % 4 == 0:
            cards.append({
                "id": f"{train_id}-jc-1",
                "trainset_id": train_id,
                "status": "open",
                "priority": 4 if i % 8 == 0 else 2,
                "description": "Brake pad inspection" if i % 8 == 0 else "Interior panel repair",
            })

    for d in range(30):
        kpis.append({
            "metric_date": today - timedelta(days=d + 1),
            "punctuality_percentage": 99.1 + (d % 5) * 0.1,
            "fleet_availability": 88 + d % 7,
        })

    return trains, certs, cards, kpis


def sample_config():
    """Operator configuration matching the packaged defaults."""
    now = datetime.now(timezone.utc)
    values = {
        "fleet_constraints": {"target_punctuality": 99.5, "max_service_hours": 18, "min_maintenance_interval": 72},
        "branding_weights": {"exposure": 0.6, "contract_priority": 0.4},
        "ai_model_settings": {"model": "deepseek-chat", "temperature": 0.2},
    }
    return [{"config_key": key, "config_value": value, "updated_at": now} for key, value in values.items()]


async def main(seed: bool) -> None:
    settings = Settings.from_env()
    store = FleetStore.from_url(settings.database_url)
    print(f"Creating tables on {store.engine.url.render_as_string(hide_password=True)}")
    await store.create_schema()

    if seed:
        trains, certs, cards, kpis = sample_rows(date.today())
        seeded = [(trainsets, trains), (fitness_certificates, certs), (job_cards, cards), (kpi_metrics, kpis),
                  (system_config, sample_config())]
        async with store.engine.begin() as conn:
            # children first, daily_schedules references trainsets too
            for table in reversed(metadata.sorted_tables):
                await conn.execute(sa.delete(table))
            for table, rows in seeded:
                await conn.execute(sa.insert(table), rows)
                print(f"Inserted {len(rows)} rows into {table.name}")

    await store.dispose()
    print("✅ Schema setup completed")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create Induction Planner tables")
    parser.add_argument("--seed", action="store_true", help="replace all data with a sample fleet")
    args = parser.parse_args()
    asyncio.run(main(args.seed))
