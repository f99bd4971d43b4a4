"""
CloudWatch logging via watchtower.

Adds a CloudWatch Logs handler that only ships reconciliation, credit and
upload logs (plus errors from anywhere) to keep costs minimal.

Requires:
  - pip install watchtower
  - IAM permissions for CloudWatch Logs (instance role or env credentials)

Environment variables:
  CLOUDWATCH_ENABLED    - Set to "true" to enable (default: disabled)
  CLOUDWATCH_LOG_GROUP  - CloudWatch log group name (default: /app/popcam-records)
  CLOUDWATCH_LOG_STREAM - Stream name (default: auto-generated from hostname + pid)
"""

import logging
import os

logger = logging.getLogger(__name__)


class RecordStoreLogFilter(logging.Filter):
    """Only pass through logs from record store modules or ERROR+ from anywhere."""

    TRACKED_MODULES = (
        "src.services.reconciler",
        "src.services.record_cache",
        "src.services.credit_service",
        "src.services.uploader",
        "src.services.backfill",
    )

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno >= logging.ERROR:
            return True

        if record.levelno >= logging.INFO:
            return any(record.name.startswith(m) for m in self.TRACKED_MODULES)

        return False


def setup_cloudwatch_logging() -> bool:
    """
    Attach a CloudWatch handler to the root logger.

    Returns True if CloudWatch logging was enabled, False otherwise.
    A handler that cannot be created (missing credentials, unreachable
    region) is logged as a warning and leaves logging local.
    """
    if os.getenv("CLOUDWATCH_ENABLED", "").lower() != "true":
        return False

    import watchtower

    log_group = os.getenv("CLOUDWATCH_LOG_GROUP", "/app/popcam-records")

    try:
        handler = watchtower.CloudWatchLogHandler(
            log_group_name=log_group,
            log_stream_name=os.getenv("CLOUDWATCH_LOG_STREAM"),
            send_interval=10,
            max_batch_count=100,
        )
        handler.setLevel(logging.INFO)
        handler.addFilter(RecordStoreLogFilter())
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

        logging.getLogger().addHandler(handler)
        logger.info("CloudWatch logging enabled: group=%s", log_group)
        return True

    except Exception as e:
        logger.warning("Failed to initialize CloudWatch logging: %s", e)
        return False


def flush_cloudwatch_logging() -> None:
    """Flush and close any CloudWatch handlers. Call on app shutdown."""
    import watchtower

    for handler in logging.getLogger().handlers:
        if isinstance(handler, watchtower.CloudWatchLogHandler):
            handler.flush()
            handler.close()
