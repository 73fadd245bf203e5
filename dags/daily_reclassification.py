"""
Daily Permit Reclassification DAG

Re-derives scope tags, trade matches, lead scores and product matches for
every permit, then checks the stored classification for invariant breaches.

Schedule: Daily at 5:00 AM
"""
from datetime import datetime, timedelta

from airflow import DAG
from airflow.operators.python import PythonOperator

from config.settings import settings
from src.tradeleads.classification.rules import load_rule_catalog
from src.tradeleads.db import get_db_session
from src.tradeleads.monitoring.classification_quality import build_quality_report, has_violations
from src.tradeleads.pipelines.reclassification import (
    ReclassificationPipeline,
    ReclassificationStats,
    evaluate_run_health,
)
from src.tradeleads.utils.logger import get_logger

logger = get_logger(__name__)

# DAG default arguments
default_args = {
    'owner': 'tradeleads',
    'depends_on_past': False,
    'email_on_failure': False,
    'email_on_retry': False,
    'retries': 1,
    'retry_delay': timedelta(minutes=10),
    'execution_timeout': timedelta(hours=3),
}


def check_rule_catalog(**context):
    """
    Load the rule catalog once to report which source the run will use.

    Returns:
        Number of active rules
    """
    with get_db_session() as session:
        catalog = load_rule_catalog(session, use_store=settings.use_rule_store)

    context['task_instance'].xcom_push(
        key='rule_catalog',
        value={'source': catalog.source, 'count': len(catalog)},
    )
    return len(catalog)


def reclassify_permits(**context):
    """
    Reclassify all permits in batches.

    Per-permit failures are counted, not raised.
    """
    pipeline = ReclassificationPipeline()
    stats = pipeline.reclassify_all(batch_size=settings.reclassify_batch_size)

    stats_dict = stats.to_dict()
    context['task_instance'].xcom_push(key='reclassification_stats', value=stats_dict)
    return stats_dict


def check_classification_quality(**context):
    """Compute population-wide invariant counts and tier/phase distributions."""
    with get_db_session() as session:
        report = build_quality_report(session)

    context['task_instance'].xcom_push(key='quality_report', value=report)
    return report


def summarize_run(stats_dict, quality_report):
    """
    Combine run statistics and the quality report into one validation result.

    Args:
        stats_dict: ReclassificationStats.to_dict() output
        quality_report: build_quality_report() output

    Returns:
        Dictionary with health, violations and passed flag
    """
    health = evaluate_run_health(ReclassificationStats(**(stats_dict or {})))
    violations = (quality_report or {}).get('violations', {})
    passed = health['healthy'] and not has_violations(quality_report or {})
    return {
        'health': health,
        'violations': violations,
        'passed': passed,
    }


def validate_reclassification(**context):
    """
    Validate that reclassification completed successfully.
    """
    ti = context['task_instance']

    rule_catalog = ti.xcom_pull(task_ids='check_rule_catalog', key='rule_catalog')
    stats_dict = ti.xcom_pull(task_ids='reclassify_permits', key='reclassification_stats')
    quality_report = ti.xcom_pull(task_ids='check_classification_quality', key='quality_report')

    logger.info("reclassification_validation_started",
                rule_catalog=rule_catalog,
                stats=stats_dict)

    summary = summarize_run(stats_dict, quality_report)
    if not summary['passed']:
        logger.warning("reclassification_validation_failed", **summary)
        return summary

    logger.info("reclassification_validation_passed")
    return summary


# Define the DAG
with DAG(
    'daily_reclassification',
    default_args=default_args,
    description='Daily reclassification of building permits into trade leads',
    schedule='0 5 * * *',  # 5:00 AM daily
    start_date=datetime(2026, 1, 1),
    catchup=False,
    tags=['classification', 'leads', 'permits'],
) as dag:

    # Task 1: Resolve rule catalog
    check_rules_task = PythonOperator(
        task_id='check_rule_catalog',
        python_callable=check_rule_catalog,
    )

    # Task 2: Reclassify permits
    reclassify_task = PythonOperator(
        task_id='reclassify_permits',
        python_callable=reclassify_permits,
    )

    # Task 3: Quality checks
    quality_task = PythonOperator(
        task_id='check_classification_quality',
        python_callable=check_classification_quality,
    )

    # Task 4: Validate run
    validate_task = PythonOperator(
        task_id='validate_reclassification',
        python_callable=validate_reclassification,
    )

    # Define dependencies
    check_rules_task >> reclassify_task >> quality_task >> validate_task
