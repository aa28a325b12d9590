import asyncio

from fastapi import APIRouter, Depends, Request, Response

from forge_relay.core.cancellation import OperationCancelled
from forge_relay.core.errors import RelayError
from forge_relay.core.gemini import GeminiClient
from forge_relay.core.prompt_builder import SYSTEM_PROMPT, build_user_prompt
from forge_relay.models.config import AppConfig
from forge_relay.models.responses import ErrorResponse
from forge_relay.server.app import get_app_config, get_gemini_client
from forge_relay.server.protocol import error_response, parse_generation_request
from forge_relay.server.relay import RelaySession, RelayStreamingResponse, watch_disconnect
from forge_relay.utils.config import get_api_key
from forge_relay.utils.logging import get_logger


logger = get_logger("generate")
router = APIRouter(tags=["generate"])

# nginx convention for a request abandoned by its client
CLIENT_CLOSED_REQUEST = 499


@router.post(
    "/generate",
    response_class=RelayStreamingResponse,
    dependencies=[Depends(get_api_key)],
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def generate_blueprint(
    request: Request,
    client: GeminiClient = Depends(get_gemini_client),
    config: AppConfig = Depends(get_app_config),
) -> Response:
    """
    Generate a Website Blueprint and stream it back as plain text.

    The status code is only committed once the first fragment has arrived, so
    every failure up to that point is answered with an error envelope.
    """
    generation_request = parse_generation_request(await request.body())
    logger.info(f"Blueprint requested for brand={generation_request.brand_name!r}")

    session = RelaySession(
        client.stream_generate,
        SYSTEM_PROMPT,
        build_user_prompt(generation_request),
        idle_timeout=config.relay.idle_timeout_sec,
    )

    watcher = asyncio.create_task(
        watch_disconnect(request, session.token, config.relay.disconnect_poll_interval_sec)
    )
    try:
        await session.start()
    except OperationCancelled:
        await session.aclose()
        return Response(status_code=CLIENT_CLOSED_REQUEST)
    except RelayError as e:
        await session.aclose()
        return error_response(e)
    except asyncio.CancelledError:
        await session.aclose()
        raise
    finally:
        watcher.cancel()

    return RelayStreamingResponse(session)
