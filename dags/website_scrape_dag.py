"""
Website Scrape DAG

Runs the website enrichment scrape job on Cloud Composer. The job input is
taken from the trigger configuration (dag_run.conf), e.g.:

    {"jobId": "job-123", "maxPagesPerSite": 5, "filterRules": [...], "fastMode": false}

Flow:
1. Resolve job input from dag_run.conf
2. Run the scrape job (crawl → extract → GCS capture → Firestore record update)
3. Report the run metrics

Schedule: None (triggered per job)
"""
from datetime import datetime, timedelta
import logging
import os
import sys

from airflow import DAG
from airflow.decorators import task
from airflow.models import Variable

# Add src to path for imports (will be used in tasks)
src_path = '/opt/airflow/src'
if src_path not in sys.path:
    sys.path.insert(0, src_path)

logger = logging.getLogger(__name__)

# Get configuration from Airflow Variables (set in Cloud Composer)
try:
    PROJECT_ID = Variable.get("PROJECT_ID", default_var="")
    CAMPAIGN_DATA_BUCKET = Variable.get("CAMPAIGN_DATA_BUCKET", default_var="")
    TASK_MEMORY_MIB = Variable.get("TASK_MEMORY_MIB", default_var="4096")
    TASK_CPU_UNITS = Variable.get("TASK_CPU_UNITS", default_var="1024")
except Exception:
    PROJECT_ID = os.getenv("PROJECT_ID", "")
    CAMPAIGN_DATA_BUCKET = os.getenv("CAMPAIGN_DATA_BUCKET", "")
    TASK_MEMORY_MIB = os.getenv("TASK_MEMORY_MIB", "4096")
    TASK_CPU_UNITS = os.getenv("TASK_CPU_UNITS", "1024")

default_args = {
    'owner': 'airflow',
    'depends_on_past': False,
    'email_on_failure': False,
    'email_on_retry': False,
    'retries': 0,
    'retry_delay': timedelta(minutes=5),
}

with DAG(
    'website_scrape_dag',
    default_args=default_args,
    description='Crawl business websites and enrich business records with contacts, team, history and ownership signals',
    schedule_interval=None,  # Triggered per job
    start_date=datetime(2025, 1, 1),
    catchup=False,
    max_active_runs=1,
    tags=['enrichment', 'scraping'],
) as dag:

    @task
    def resolve_job_input(**context):
        """Read the job input from the trigger configuration"""
        conf = context['dag_run'].conf or {}
        logger.info(f"Job input from dag_run.conf: {conf}")
        return conf

    @task(execution_timeout=timedelta(hours=6))
    def run_scrape(job_conf: dict, **context):
        """Run the scrape job and return its metrics"""
        import asyncio

        # Settings are read from the environment at import time
        if PROJECT_ID:
            os.environ.setdefault("PROJECT_ID", PROJECT_ID)
        if CAMPAIGN_DATA_BUCKET:
            os.environ.setdefault("CAMPAIGN_DATA_BUCKET", CAMPAIGN_DATA_BUCKET)

        from site_enrichment.job import parse_job_input, run_scrape_job  # Import here to avoid timeout
        from site_enrichment.storage import BusinessStore, CaptureStore
        from site_enrichment.config import CAMPAIGN_DATA_BUCKET as bucket_name

        job_input = parse_job_input(job_conf)
        metrics = asyncio.run(run_scrape_job(
            job_input,
            BusinessStore(),
            CaptureStore(bucket_name),
            memory_mib=int(TASK_MEMORY_MIB),
            cpu_units=int(TASK_CPU_UNITS),
        ))
        return metrics.model_dump()

    @task
    def report_metrics(metrics: dict, **context):
        """Log the run metrics"""
        logger.info("=" * 60)
        logger.info("Website scrape finished")
        for key, value in metrics.items():
            logger.info(f"   {key}: {value}")
        logger.info("=" * 60)
        if metrics.get('processed', 0) == 0 and metrics.get('failed', 0) > 0:
            raise ValueError(f"All {metrics['failed']} businesses failed to scrape")
        return metrics

    report_metrics(run_scrape(resolve_job_input()))
