from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from app.schemas.event import ErrorResponse, IngestResponse, InvalidEventResponse
from app.services.ingestion import IngestionStrategy, get_ingestion_strategy

router = APIRouter(prefix="/events", tags=["events"])


@router.post(
    "",
    response_model=IngestResponse,
    responses={
        400: {"model": InvalidEventResponse},
        500: {"model": ErrorResponse},
    },
)
async def ingest_event(
        request: Request,
        strategy: IngestionStrategy = Depends(get_ingestion_strategy)
):
    """
    Ingest a single event.

    The body is read as-is and must be a JSON object. Recognized fields:

    - **event_type**: optional, counted per distinct value
    - **url**: optional

    Other fields are archived with the raw copy but not normalized.
    """
    raw_body = await request.body()
    result = await strategy.process(raw_body)

    return JSONResponse(status_code=result.status_code, content=result.body)
