"""
Table definitions for the Induction Planner store.

Only the columns the scheduling engine reads or writes are declared here.
"""
import sqlalchemy as sa

metadata = sa.MetaData()

trainsets = sa.Table(
    "trainsets",
    metadata,
    sa.Column("id", sa.String(64), primary_key=True),
    sa.Column("number", sa.String(32), nullable=False),
    sa.Column("status", sa.String(16), nullable=False, server_default="standby"),
    sa.Column("bay_position", sa.Integer, nullable=False),
    sa.Column("mileage", sa.Integer, nullable=False, server_default="0"),
    sa.Column("last_cleaning", sa.DateTime(timezone=True)),
    sa.Column("branding_priority", sa.Integer, nullable=False, server_default="5"),
    sa.Column("availability_percentage", sa.Float, nullable=False, server_default="100"),
)

fitness_certificates = sa.Table(
    "fitness_certificates",
    metadata,
    sa.Column("id", sa.String(64), primary_key=True),
    sa.Column("trainset_id", sa.String(64), sa.ForeignKey("trainsets.id"), nullable=False, index=True),
    sa.Column("certificate_type", sa.String(32), nullable=False),
    sa.Column("issue_date", sa.Date),
    sa.Column("expiry_date", sa.Date, nullable=False),
)

job_cards = sa.Table(
    "job_cards",
    metadata,
    sa.Column("id", sa.String(64), primary_key=True),
    sa.Column("trainset_id", sa.String(64), sa.ForeignKey("trainsets.id"), nullable=False, index=True),
    sa.Column("status", sa.String(16), nullable=False),
    sa.Column("priority", sa.Integer),
    sa.Column("description", sa.Text),
)

daily_schedules = sa.Table(
    "daily_schedules",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("schedule_date", sa.Date, nullable=False),
    sa.Column("trainset_id", sa.String(64), sa.ForeignKey("trainsets.id"), nullable=False),
    sa.Column("planned_status", sa.String(16), nullable=False),
    sa.Column("ai_confidence_score", sa.Float),
    sa.Column("reasoning", sa.JSON),
    sa.Column("updated_at", sa.DateTime(timezone=True)),
    sa.UniqueConstraint("schedule_date", "trainset_id", name="uq_daily_schedules_date_trainset"),
)

kpi_metrics = sa.Table(
    "kpi_metrics",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("metric_date", sa.Date, nullable=False),
    sa.Column("punctuality_percentage", sa.Float),
    sa.Column("fleet_availability", sa.Float),
    sa.Column("maintenance_cost", sa.Float),
    sa.Column("energy_consumption", sa.Float),
    sa.Column("passenger_satisfaction", sa.Float),
)

ai_training_data = sa.Table(
    "ai_training_data",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("schedule_date", sa.Date, nullable=False),
    sa.Column("input_features", sa.JSON),
    sa.Column("ai_recommendation", sa.JSON),
    sa.Column("model_version", sa.String(64)),
    sa.Column("created_at", sa.DateTime(timezone=True)),
)

system_config = sa.Table(
    "system_config",
    metadata,
    sa.Column("config_key", sa.String(64), primary_key=True),
    sa.Column("config_value", sa.JSON),
    sa.Column("updated_at", sa.DateTime(timezone=True)),
)
