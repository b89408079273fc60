"""
AWS Lambda entry point for API Gateway proxy events

Usage (function handler setting):
    app.lambda_handler.handler
"""

import asyncio
import base64
import json
import structlog

from app.core.config import settings
from app.core.logging import setup_logging
from app.services.ingestion import get_ingestion_strategy

setup_logging(log_level=settings.log_level, log_format=settings.log_format)

logger = structlog.get_logger()

# One loop for the life of the execution environment, so the cached
# database engine stays bound to the loop it was created on
_loop = asyncio.new_event_loop()


def _request_body(event: dict) -> str | bytes | None:
    body = event.get("body")
    if body is not None and event.get("isBase64Encoded"):
        return base64.b64decode(body)
    return body


def handler(event, context):
    """Process one API Gateway request and return a proxy response"""
    logger.info(
        "lambda_invoked",
        request_id=getattr(context, "aws_request_id", None),
        path=event.get("rawPath") or event.get("path")
    )

    strategy = get_ingestion_strategy()
    result = _loop.run_until_complete(strategy.process(_request_body(event)))

    return {
        "statusCode": result.status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(result.body)
    }
