"""
Airflow DAG definitions for the extensions data pipeline.

All DAG modules in this package should be importable by the Airflow
scheduler. Keep DAG definitions small and delegate heavy work to the
`extensions_pipeline.load` modules.
"""
