"""
RQ Worker bootstrap

Usage:
    python -m shopvest.workers.worker
"""

from rq import Queue, Worker

from shopvest.infrastructure.logging_config import setup_logging
from shopvest.infrastructure.redis_client import get_redis
from shopvest.infrastructure.settings import get_settings
from shopvest.workers import jobs  # noqa: F401  Import jobs so the worker can resolve them


def main() -> None:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    redis_conn = get_redis()
    queues = [Queue(settings.JOBS_QUEUE_NAME, connection=redis_conn)]
    Worker(queues, connection=redis_conn).work()


if __name__ == "__main__":
    main()
