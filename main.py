"""
Lead-gen scraper — command-line run
===================================
Runs one scrape job in the foreground and exports the leads it created:
  1. Create the job            (pending → running)
  2. Crawl / fetch             (listing pagination or single page)
  3. Harvest + dedup + persist (one company + lead per new detail page)
  4. CSV export                (output/<file>.csv)

Usage:
  python main.py --url "https://thehub.io/startups?countryCodes=SE" --job-type thehub

Options:
  --url           Listing or page URL (required)
  --job-type      thehub (paginated listing) or general (single page)
  --max-pages     Listing pages to crawl (default: from .env / 10)
  --output        Output CSV filename (default: leads_YYYYMMDD_HHMMSS.csv)
  --log-level     Logging level: DEBUG, INFO, WARNING (default: INFO)
"""
import argparse
import json
import logging
import sys
from datetime import datetime

import config
from processors.lead_export import export_leads_csv, job_leads
from processors.scrape_job import ScrapeJobController
from storage.memory import InMemoryStore
from storage.models import JobStatus, JobType, ScrapeJob


def setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )


def print_summary(job: ScrapeJob, path: str):
    summary = json.loads(job.result_summary) if job.result_summary else {}
    print("\n" + "=" * 60)
    print("  SCRAPE JOB SUMMARY")
    print("=" * 60)
    print(f"  Job #{job.id} ({job.job_type.value})  : {job.status.value}")
    print(f"  URL                    : {job.url}")
    if job.error_message:
        print(f"  Error                  : {job.error_message}")
    print(f"  Items processed        : {job.items_scraped}/{job.total_items or 0}")
    print(f"  Companies created      : {summary.get('companiesFound', 0)}")
    print(f"  Leads created          : {summary.get('leadsCreated', 0)}")
    print(f"  Emails found           : {summary.get('emailsFound', 0)}")
    if "pagesProcessed" in summary:
        print(f"  Listing pages          : {summary['pagesProcessed']}")
    if path:
        print(f"\n  Output file: {path}")
    print("=" * 60 + "\n")


def run(args) -> ScrapeJob:
    logger = logging.getLogger("main")
    store = InMemoryStore()
    controller = ScrapeJobController(store)

    job = store.create_job(args.url, JobType(args.job_type))
    logger.info(f"Job {job.id} created for {args.url}")
    job = controller.run(job.id, max_pages=args.max_pages)

    path = None
    leads = job_leads(store, job)
    if leads:
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        path = export_leads_csv(store, leads, args.output or f"leads_{ts}.csv")
    else:
        logger.warning("No leads created; nothing to export")

    print_summary(job, path)
    return job


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Lead-gen scraper: run one scrape job",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--url",
        required=True,
        help="Listing URL (thehub) or any page URL (general)",
    )
    parser.add_argument(
        "--job-type",
        default=JobType.GENERAL.value,
        choices=[t.value for t in JobType],
        help="Job kind (default: general)",
    )
    parser.add_argument(
        "--max-pages",
        type=int,
        default=config.DEFAULT_MAX_PAGES,
        help=f"Max listing pages to crawl (default: {config.DEFAULT_MAX_PAGES})",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Output CSV filename (saved in ./output/)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO)",
    )
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = parse_args()
    setup_logging(args.log_level)
    job = run(args)
    sys.exit(0 if job.status == JobStatus.COMPLETED else 1)
