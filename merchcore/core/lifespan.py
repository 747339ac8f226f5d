# merchcore/core/lifespan.py
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from merchcore.db import mongo, redis as r
from merchcore.core.config import get_settings
from merchcore.domain.repositories.cache_repo import MemoryResultCache, RedisResultCache
from merchcore.workers.dispatcher import TaskDispatcher

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # --- Startup ---
    await mongo.connect()
    await r.connect()

    # Result cache: Redis when available, otherwise per-process memory
    redis_client = r.get_redis()
    app.state.cache = (
        RedisResultCache(redis_client, prefix=settings.cache_prefix)
        if redis_client is not None
        else MemoryResultCache()
    )
    logger.info("Result cache: %s", type(app.state.cache).__name__)

    # Fire-and-forget workers (popularity recompute, profile updates)
    app.state.dispatcher = TaskDispatcher(maxsize=settings.task_queue_size, workers=settings.task_workers)
    await app.state.dispatcher.start()

    # Application runs
    yield

    # --- Shutdown ---
    await app.state.dispatcher.stop()
    await r.disconnect()
    await mongo.disconnect()
