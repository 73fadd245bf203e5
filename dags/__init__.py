"""
Airflow DAGs Package

Contains all DAG definitions for the trade leads pipeline.

DAGs:
- daily_reclassification: Reclassify permits and check classification quality (5:00 AM)
"""
