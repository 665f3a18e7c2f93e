"""
Ingest one Persian legal source into the knowledge base from the command line.

Runs the same pipeline as the HTTP ingestion endpoints:
- Normalizer: strips markup and decodes entities
- Chunker: splits on "ماده N" article markers (paragraph fallback)
- Embeddings: provider from EMBEDDING_PROVIDER
- Storage: PostgreSQL + pgvector (or the in-memory store)

Usage:
    python ingest_legal_source.py --url https://example.ir/labor-law --category labor_law
    python ingest_legal_source.py --html-file law.html --source-url https://example.ir/law --category labor_law
    python ingest_legal_source.py --text-file law.txt --category social_security
"""

import sys
import argparse
import logging
from pathlib import Path
from dotenv import load_dotenv

# Ensure project root is on path
PROJECT_ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(PROJECT_ROOT))
load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def build_pipeline(config):
    from execution.legal_advisor.document_extractor import DocumentTextExtractor
    from execution.legal_advisor.document_store import get_document_store
    from execution.legal_advisor.embeddings import get_embedding_client
    from execution.legal_advisor.ingestion import IngestionPipeline

    if not config.embedding_key_configured:
        logger.warning(
            f"{config.embedding_key_name.upper()} not set, chunks will be stored without embeddings"
        )
    store = get_document_store(config)
    pipeline = IngestionPipeline(
        store=store,
        embeddings=get_embedding_client(config),
        extractor=DocumentTextExtractor(config),
        request_timeout=config.request_timeout,
    )
    return pipeline, store


def main():
    from execution.legal_advisor.config import AdvisorConfig
    from execution.legal_advisor.errors import LegalAdvisorError

    arg_parser = argparse.ArgumentParser(description="Ingest a Persian legal source")
    source = arg_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--url", type=str, help="Page to scrape")
    source.add_argument("--html-file", type=str, help="Saved HTML page")
    source.add_argument("--text-file", type=str, help="Plain text file")
    arg_parser.add_argument(
        "--category",
        type=str,
        default="labor_law",
        help="Knowledge base category (default: labor_law)",
    )
    arg_parser.add_argument(
        "--source-url",
        type=str,
        default=None,
        help="Source URL recorded for file input (default: the file path)",
    )
    args = arg_parser.parse_args()

    config = AdvisorConfig.from_env(dotenv=False)
    pipeline, store = build_pipeline(config)

    try:
        if args.url:
            report = pipeline.ingest_url(args.url, args.category)
        else:
            path = Path(args.html_file or args.text_file)
            if not path.exists():
                logger.error(f"File not found: {path}")
                sys.exit(1)
            source_url = args.source_url or path.resolve().as_uri()
            if args.html_file:
                report = pipeline.ingest_html(
                    path.read_text(encoding="utf-8"), args.category, source_url,
                )
            else:
                report = pipeline.ingest_document(
                    path.read_bytes(), path.name, args.category,
                    mime_type="text/plain", source_url=source_url,
                )
    except LegalAdvisorError as e:
        for line in e.logs or []:
            print(line)
        logger.error(f"Ingestion failed: {e.message}")
        sys.exit(1)
    finally:
        store.close()

    for line in report.logs:
        print(line)

    stats = report.stats
    print(f"\n{'=' * 60}")
    print("INGESTION COMPLETE")
    print(f"{'=' * 60}")
    print(f"  Chunks found:    {stats.total_chunks}")
    print(f"  Chunks saved:    {stats.saved_count}")
    print(f"  With embeddings: {stats.embedded_count}")
    print(f"  Content length:  {stats.content_length:,}")


if __name__ == "__main__":
    main()
