import asyncio
import uuid
from collections.abc import AsyncIterator, Callable
from enum import Enum

import anyio
from starlette.requests import ClientDisconnect, Request
from starlette.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from forge_relay.core.cancellation import CancellationToken, OperationCancelled
from forge_relay.core.errors import RelayError, StreamAborted, UpstreamError, UpstreamTimeoutError
from forge_relay.utils.logging import get_logger


logger = get_logger("relay")

FragmentSource = Callable[[str, str, CancellationToken], AsyncIterator[str]]

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}


class SessionState(str, Enum):
    IDLE = "idle"
    AWAITING_UPSTREAM = "awaiting_upstream"
    STREAMING = "streaming"
    CLOSED = "closed"
    ERRORED = "errored"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({SessionState.CLOSED, SessionState.ERRORED, SessionState.CANCELLED})


class RelaySession:
    """
    One relay invocation: a single upstream fragment sequence re-exposed as a
    byte stream.

    The session pulls fragments one at a time. Every pull is raced against the
    session's cancellation token and the idle timeout, and the session reaches
    exactly one terminal state.
    """

    def __init__(
        self,
        source: FragmentSource,
        system_instruction: str,
        prompt: str,
        idle_timeout: float | None = None,
    ):
        self.id = uuid.uuid4().hex[:8]
        self.token = CancellationToken()
        self.state = SessionState.IDLE
        self.fragments_sent = 0
        self.bytes_sent = 0
        self.error: BaseException | None = None

        self._source = source
        self._system_instruction = system_instruction
        self._prompt = prompt
        self._idle_timeout = idle_timeout
        self._fragments: AsyncIterator[str] | None = None
        self._first: str | None = None
        self._pending: asyncio.Future | None = None
        self._upstream_closed = False

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def _transition(self, state: SessionState) -> bool:
        if self.finished:
            return False
        self.state = state
        return True

    def _finish(self, state: SessionState, error: BaseException | None = None) -> None:
        if not self._transition(state):
            return
        self.error = error

        if state == SessionState.CLOSED:
            logger.info(
                f"Session {self.id}: completed, {self.fragments_sent} fragments, {self.bytes_sent} bytes"
            )
        elif state == SessionState.CANCELLED:
            self.token.cancel("client disconnected")
            logger.info(f"Session {self.id}: cancelled after {self.fragments_sent} fragments")
        else:
            self.token.cancel("upstream error")
            if self.bytes_sent:
                # Headers and part of the body are already out; the stream is aborted
                logger.error(f"Session {self.id}: upstream failed after {self.bytes_sent} bytes: {error}")
            else:
                logger.error(f"Session {self.id}: upstream failed: {error}")

    async def _next_fragment(self) -> str:
        if self._fragments is None:
            raise RuntimeError(f"Session {self.id} has not been started")
        self._pending = asyncio.ensure_future(self._fragments.__anext__())
        try:
            return await self.token.run(self._pending, timeout=self._idle_timeout)
        except asyncio.TimeoutError as e:
            self.token.cancel("idle timeout")
            raise UpstreamTimeoutError(
                f"No fragment received within {self._idle_timeout}s"
            ) from e

    async def start(self) -> None:
        """
        Invoke the upstream source and wait for its first fragment.

        Raises:
            OperationCancelled: The token was cancelled while waiting
            RelayError: The upstream call failed or timed out
        """
        if not self._transition(SessionState.AWAITING_UPSTREAM):
            raise RuntimeError(f"Session {self.id} already finished")
        logger.info(f"Session {self.id}: awaiting upstream")

        self._fragments = self._source(self._system_instruction, self._prompt, self.token)

        try:
            self._first = await self._next_fragment()
        except StopAsyncIteration:
            self._finish(SessionState.CLOSED)
        except OperationCancelled:
            self._finish(SessionState.CANCELLED)
            raise
        except RelayError as e:
            self._finish(SessionState.ERRORED, e)
            raise
        except Exception as e:
            self._finish(SessionState.ERRORED, e)
            raise UpstreamError(str(e)) from e
        else:
            self._transition(SessionState.STREAMING)

    async def body(self) -> AsyncIterator[bytes]:
        """Yield the encoded fragments, starting with the one fetched by start()."""
        try:
            if self._first is not None:
                fragment, self._first = self._first, None
                yield self._encode(fragment)

            while not self.finished:
                try:
                    fragment = await self._next_fragment()
                except StopAsyncIteration:
                    self._finish(SessionState.CLOSED)
                    break

                if self.token.cancelled:
                    self._finish(SessionState.CANCELLED)
                    break
                yield self._encode(fragment)

        except OperationCancelled:
            self._finish(SessionState.CANCELLED)

        except (asyncio.CancelledError, GeneratorExit):
            self._finish(SessionState.CANCELLED)
            raise

        except Exception as e:
            self._finish(SessionState.ERRORED, e)
            # A half-written chunked body cannot carry an error envelope
            raise StreamAborted(f"Session {self.id} aborted after {self.bytes_sent} bytes") from e

        finally:
            await self.aclose()

    def _encode(self, fragment: str) -> bytes:
        data = fragment.encode("utf-8")
        self.fragments_sent += 1
        self.bytes_sent += len(data)
        return data

    async def aclose(self) -> None:
        """Stop the upstream call and release its connection. Idempotent."""
        if not self.finished:
            self._finish(SessionState.CANCELLED)
        self.token.cancel("session closed")

        if self._upstream_closed or self._fragments is None:
            return
        self._upstream_closed = True

        with anyio.CancelScope(shield=True):
            # A pull abandoned by cancellation must settle before the generator can be closed
            if self._pending is not None and not self._pending.done():
                self._pending.cancel()
                await asyncio.wait({self._pending})
                if not self._pending.cancelled() and self._pending.exception() is not None:
                    logger.debug(f"Session {self.id}: abandoned pull ended with {self._pending.exception()!r}")

            aclose = getattr(self._fragments, "aclose", None)
            if aclose is None:
                return
            try:
                await aclose()
            except Exception as e:
                logger.warning(f"Session {self.id}: error while closing upstream: {e}")


class RelayStreamingResponse(StreamingResponse):
    """Chunked plain-text response that always closes its relay session."""

    media_type = "text/plain; charset=utf-8"

    def __init__(self, session: RelaySession):
        super().__init__(session.body(), headers=STREAM_HEADERS)
        self.session = session

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        except ClientDisconnect:
            logger.debug(f"Session {self.session.id}: client went away during write")
        finally:
            await self.session.aclose()


async def watch_disconnect(request: Request, token: CancellationToken, interval: float) -> None:
    """Cancel `token` once the client behind `request` disconnects."""
    while not token.cancelled:
        if await request.is_disconnected():
            token.cancel("client disconnected")
            return
        await asyncio.sleep(interval)
