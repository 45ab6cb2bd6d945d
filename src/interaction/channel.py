"""
Prompt Channel - Human-in-the-loop questions with a hard timeout.

A single long-lived text channel to the operator. One question may be
outstanding at a time; its answer and its timeout race to resolve the
same future, and whichever comes second is a no-op.

When reading the real stdin, closing the channel closes the read pipe
transport and with it the process's stdin descriptor. A closed channel
cannot be reopened and nothing else in the process can read stdin
afterwards.
"""

from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, TextIO

import structlog

from core.errors import (
    PromptBusyError,
    PromptCancelled,
    PromptChannelClosed,
    PromptTimeout,
)

logger = structlog.get_logger()


class PromptStatus(Enum):
    """How a question ended."""
    ANSWERED = "answered"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PromptOutcome:
    """Tagged result of a question."""
    status: PromptStatus
    answer: Optional[str] = None

    @property
    def answered(self) -> bool:
        return self.status == PromptStatus.ANSWERED


@dataclass
class PromptRequest:
    """An outstanding question. Resolved at most once."""
    question: str
    timeout: float
    future: asyncio.Future
    _timer: Optional[asyncio.TimerHandle] = field(default=None, repr=False)

    def arm(self, loop: asyncio.AbstractEventLoop) -> None:
        """Start the timeout timer."""
        self._timer = loop.call_later(self.timeout, self.expire)

    def resolve(self, outcome: PromptOutcome) -> bool:
        """Settle the request. Returns False if it was already settled."""
        if self.future.done():
            return False
        if self._timer is not None:
            self._timer.cancel()
        self.future.set_result(outcome)
        return True

    def answer(self, text: str) -> bool:
        return self.resolve(PromptOutcome(PromptStatus.ANSWERED, text))

    def expire(self) -> bool:
        return self.resolve(PromptOutcome(PromptStatus.TIMED_OUT))

    def cancel(self) -> bool:
        return self.resolve(PromptOutcome(PromptStatus.CANCELLED))

    def discard(self) -> None:
        """Drop the request without an outcome (the asking task went away)."""
        if self._timer is not None:
            self._timer.cancel()
        if not self.future.done():
            self.future.cancel()

    @property
    def done(self) -> bool:
        return self.future.done()


class PromptChannel:
    """
    Operator prompt over a line-oriented reader and a text output.

    Input is read by a single background task that starts with the first
    question. Lines that arrive while no question is waiting are discarded.
    """

    def __init__(
        self,
        reader: Optional[Any] = None,
        output: Optional[TextIO] = None,
        default_timeout: float = 30,
    ):
        """
        Initialize the prompt channel.

        Args:
            reader: Object with an async ``readline()``; stdin when omitted
            output: Stream questions are written to; stdout when omitted
            default_timeout: Seconds to wait when ``ask`` gets no timeout
        """
        self._reader = reader
        self._output = output or sys.stdout
        self.default_timeout = default_timeout

        self._transport: Optional[asyncio.BaseTransport] = None
        self._pump_task: Optional[asyncio.Task] = None
        self._pending: Optional[PromptRequest] = None
        self._input_ended = False
        self._closed = False

    async def ask(self, question: str, timeout: Optional[float] = None) -> str:
        """
        Ask the operator a question and wait for the answer.

        Raises:
            PromptTimeout: no answer within the timeout
            PromptCancelled: the channel closed or input ended first
            PromptBusyError: another question is still outstanding
            PromptChannelClosed: the channel is closed
        """
        timeout = self.default_timeout if timeout is None else timeout
        outcome = await self.request(question, timeout)

        if outcome.status == PromptStatus.ANSWERED:
            return outcome.answer
        if outcome.status == PromptStatus.TIMED_OUT:
            raise PromptTimeout(
                f"The question timed out after {timeout}s.",
                question=question,
                timeout=timeout,
            )
        raise PromptCancelled("The question was cancelled.", question=question)

    async def request(self, question: str, timeout: Optional[float] = None) -> PromptOutcome:
        """Ask a question and return how it ended instead of raising."""
        if self._closed:
            raise PromptChannelClosed("Prompt channel is closed.", question=question)
        if self._input_ended:
            raise PromptChannelClosed("Operator input has ended.", question=question)
        if self._pending is not None:
            raise PromptBusyError(
                "Another question is still waiting for an answer.",
                question=question,
            )

        timeout = self.default_timeout if timeout is None else timeout
        loop = asyncio.get_running_loop()
        request = PromptRequest(question=question, timeout=timeout, future=loop.create_future())
        self._pending = request

        try:
            await self._ensure_reading()
            if self._closed or self._input_ended:
                request.cancel()
            else:
                self._output.write(question)
                self._output.flush()
                logger.info("prompt_asked", question=question, timeout_seconds=timeout)
                request.arm(loop)

            outcome = await request.future
        except BaseException:
            request.discard()
            raise
        finally:
            if self._pending is request:
                self._pending = None

        if outcome.status == PromptStatus.TIMED_OUT:
            logger.warning("prompt_timed_out", question=question, timeout_seconds=timeout)
        elif outcome.status == PromptStatus.CANCELLED:
            logger.warning("prompt_cancelled", question=question)
        else:
            logger.info("prompt_answered", question=question)
        return outcome

    def close(self) -> None:
        """
        Close the channel once, cancelling any outstanding question.

        Also closes stdin when the channel was reading it.
        """
        if self._closed:
            return
        self._closed = True

        if self._pending is not None:
            self._pending.cancel()
        if self._pump_task is not None and not self._pump_task.done():
            self._pump_task.cancel()
        if self._transport is not None:
            self._transport.close()
            self._transport = None

        logger.info("prompt_channel_closed")

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> Optional[PromptRequest]:
        return self._pending

    async def _ensure_reading(self) -> None:
        if self._pump_task is not None:
            return

        if self._reader is None:
            try:
                self._reader = await self._open_stdin()
            except (OSError, ValueError) as e:
                self._input_ended = True
                raise PromptChannelClosed(f"Operator input is unavailable: {e}")

        self._pump_task = asyncio.create_task(self._pump())

    async def _open_stdin(self) -> asyncio.StreamReader:
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader()
        protocol = asyncio.StreamReaderProtocol(reader)
        self._transport, _ = await loop.connect_read_pipe(lambda: protocol, sys.stdin)
        return reader

    async def _pump(self) -> None:
        """Deliver input lines to whichever question is waiting."""
        try:
            while True:
                line = await self._reader.readline()
                if not line:
                    logger.info("prompt_input_ended")
                    break

                text = line.decode() if isinstance(line, bytes) else line
                text = text.rstrip("\r\n")

                pending = self._pending
                if pending is None or not pending.answer(text):
                    logger.debug("prompt_answer_discarded")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("prompt_input_failed", error=str(e), error_type=type(e).__name__)

        self._input_ended = True
        if self._pending is not None:
            self._pending.cancel()
