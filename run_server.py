import os

import uvicorn

from ecosense.config import settings
from utils.logging_utils import get_tagged_logger, mask_url, setup_logging

logger = get_tagged_logger(__name__, tag="server")


def log_startup_checks() -> None:
    """
    Warn about configuration that degrades the service without stopping it:
    - no LLM key means every chat reply is the canned apology;
    - the in-memory store loses profiles, votes and chat history on restart.
    """
    if not settings.llm_api_key:
        logger.warning("No LLM API key configured (ECOSENSE_LLM_API_KEY / GROQ_API_KEY); chat replies will fail over.")
    else:
        logger.info("LLM configured", extra={"base_url": mask_url(settings.llm_base_url), "model": settings.llm_model})

    if settings.store_backend == "memory":
        logger.info("Using in-memory stores; data will not survive a restart.")


if __name__ == "__main__":
    setup_logging(level=os.getenv("LOG_LEVEL", "INFO"), job_name="ecosense_api")
    log_startup_checks()

    uvicorn.run(
        "ecosense.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=False,
    )
