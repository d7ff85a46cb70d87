# extensions_pipeline/dags/extensions_pipeline_dag.py
"""
Airflow DAG for the extensions data pipeline.

This DAG runs the PostgreSQL loader once per day. Input locations are
read from the environment of the Airflow worker:

- EXTENSIONS_META_PATH      JSON file with the extensions metadata
- EXTENSIONS_DIR            directory with the ``<id>.crx`` archives
- EXTENSIONS_REQUESTS_PATH  JSON file with the recorded requests

Database settings follow :meth:`DbConfig.from_env`.
"""

from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta
from pathlib import Path

# ---------------------------------------------------------------------------
# Ensure /opt/airflow (project root) is in sys.path for extensions_pipeline imports
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parents[2]  # -> /opt/airflow
if str(PROJECT_ROOT) not in sys.path:
    sys.path.append(str(PROJECT_ROOT))

from airflow import DAG
from airflow.exceptions import AirflowException
from airflow.operators.python import PythonOperator

from extensions_pipeline.load.db_connection import DbConfig
from extensions_pipeline.load.loader_postgres import ensure_schema, fill_extensions_tables

DATA_ROOT = Path(os.getenv("EXTENSIONS_DATA_ROOT", "/opt/airflow/data"))


def task_load_extensions(**context) -> None:
    """
    Airflow task wrapper for the extensions PostgreSQL loader.

    Fails the task only if the run could not complete; individual bad
    records show up in the task log and the summary line.
    """
    db_config = DbConfig.from_env()
    ensure_schema(db_config)

    report = fill_extensions_tables(
        Path(os.getenv("EXTENSIONS_META_PATH", DATA_ROOT / "extensions.json")),
        Path(os.getenv("EXTENSIONS_DIR", DATA_ROOT / "extensions")),
        Path(os.getenv("EXTENSIONS_REQUESTS_PATH", DATA_ROOT / "requests.json")),
        db_config,
    )
    print(f"[EXTENSIONS] {report.summary()}")

    if report.aborted or report.error:
        raise AirflowException(f"Extensions load did not complete: {report.error}")


# ---------------------------------------------------------------------------
# DAG definition
# ---------------------------------------------------------------------------
default_args = {
    "owner": "extensions",
    "depends_on_past": False,
    "start_date": datetime(2025, 1, 1),
    "retries": 0,
    "retry_delay": timedelta(minutes=5),
}

with DAG(
    dag_id="extensions_daily_load",
    description="Load extension metadata, files and requests into PostgreSQL.",
    default_args=default_args,
    schedule="@daily",
    catchup=False,
    max_active_runs=1,
    tags=["extensions", "postgres"],
) as dag:

    load_extensions = PythonOperator(
        task_id="load_extensions_into_postgres",
        python_callable=task_load_extensions,
    )
