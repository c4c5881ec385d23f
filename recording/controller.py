"""
Recording session controller.

State machine:

    IDLE --start--> REQUESTING_PERMISSION --granted--> RECORDING
    RECORDING --stop--> STOPPING --> RECORDED
    REQUESTING_PERMISSION / RECORDING / STOPPING --failure--> ERROR

Recognition callbacks are posted onto an asyncio.Queue and applied in
arrival order by a single pump task. Every recognizer run gets a fresh
token; events carrying any other token are stale and dropped, which is how
late callbacks from a stopped, restarted or replaced run are ignored.

Transcript policy: a final result replaces the transcript; an interim
result replaces it only until the first final result of the session.

Transient ("network") errors restart the recognizer after a fixed delay.
The session fails once max_attempts transient errors have been seen.
Permission, device and other engine errors fail immediately.

The microphone is held in an AsyncExitStack and released on every exit
from REQUESTING_PERMISSION / RECORDING, including teardown.

From ERROR the user can type the transcript by hand; it is sent to the
same analysis sink as a recorded transcript.
"""

import asyncio
import functools
import logging
from contextlib import AsyncExitStack
from dataclasses import replace
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Tuple, Union

from core.data_models import FacialMetrics, SpeechMetrics
from core.enums import ErrorKind, RecognitionEventType, SessionState
from core.errors import (
    AnalysisInProgressError,
    DeviceUnavailableError,
    EmptyTranscriptError,
    InvalidTransitionError,
    PermissionDeniedError,
    SessionBusyError,
    SessionError,
    TransientRecognitionError,
)
from utils.config_loader import get_nested_config

from .interfaces import Microphone, RecognitionEvent, SpeechRecognizer
from .session import RecordingSession

logger = logging.getLogger(__name__)

AnalysisSink = Callable[[str], Awaitable[SpeechMetrics]]
SessionListener = Callable[[RecordingSession], None]

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY_SEC = 1.0

TRANSIENT_ERRORS = frozenset({"network"})
BENIGN_ERRORS = frozenset({"aborted", "no-speech"})

PERMISSION_MESSAGE = "Microphone access denied. Please allow microphone access in your browser settings."
NO_DEVICE_MESSAGE = "No microphone detected. Please connect a microphone and try again."
NETWORK_MESSAGE = "Network error. Please check your internet connection."
START_FAILED_MESSAGE = "Failed to start recording. Please try again or type your response."
STOP_FAILED_MESSAGE = "Failed to stop recording. Please try again or type your response."

ERROR_MESSAGES = {
    "not-allowed": PERMISSION_MESSAGE,
    "service-not-allowed": PERMISSION_MESSAGE,
    "audio-capture": NO_DEVICE_MESSAGE,
    "network": NETWORK_MESSAGE,
}

PERMISSION_ERRORS = frozenset({"not-allowed", "service-not-allowed", "audio-capture"})


class RecordingSessionController:
    """
    Owns the single authoritative RecordingSession.

    Usage:
        controller = RecordingSessionController(mic, recognizer, sink)
        await controller.start()
        ...
        await controller.stop()
        metrics = await controller.analyze()
    """

    def __init__(
        self,
        microphone: Microphone,
        recognizer: SpeechRecognizer,
        analysis_sink: Optional[AnalysisSink] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY_SEC
    ):
        """
        Initialize controller.

        Args:
            microphone: Microphone resource
            recognizer: Speech recognition engine
            analysis_sink: Async callable receiving finished transcripts
            max_attempts: Transient errors tolerated before failing
            retry_delay: Seconds to wait before restarting recognition
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.microphone = microphone
        self.recognizer = recognizer
        self.analysis_sink = analysis_sink
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay

        self._session = RecordingSession()
        self._listeners: List[SessionListener] = []
        self._channel: Optional["asyncio.Queue[Tuple[int, RecognitionEvent]]"] = None
        self._pump_task: Optional[asyncio.Task] = None
        self._mic_stack: Optional[AsyncExitStack] = None
        self._token = 0
        self._analysis_in_flight = False
        self._recognizer_running = False

    # ------------------------------------------------------------------
    # Session projection
    # ------------------------------------------------------------------

    @property
    def session(self) -> RecordingSession:
        return self._session

    @property
    def controls_enabled(self) -> bool:
        return not self._session.is_active

    @property
    def manual_entry_enabled(self) -> bool:
        return self._session.manual_entry_enabled

    @property
    def is_analyzing(self) -> bool:
        return self._analysis_in_flight

    @property
    def microphone_held(self) -> bool:
        return self._mic_stack is not None

    def subscribe(self, listener: SessionListener) -> None:
        """Register a callback invoked with every new session snapshot."""
        self._listeners.append(listener)

    def _update(self, **changes) -> None:
        self._session = replace(self._session, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._session)
            except Exception as e:
                logger.error(f"Session listener failed: {e}")

    # ------------------------------------------------------------------
    # User operations
    # ------------------------------------------------------------------

    async def start(self) -> RecordingSession:
        """
        Start a new recording session.

        Returns:
            Session snapshot after the start attempt (RECORDING or ERROR)

        Raises:
            SessionBusyError: A session is already active
        """
        if self._session.is_active:
            raise SessionBusyError(f"Cannot start while {self._session.state.value}")

        self._ensure_pump()
        self._invalidate_token()

        # A new recording discards the previous session entirely
        self._session = RecordingSession(
            session_id=self._session.session_id + 1,
            state=SessionState.REQUESTING_PERMISSION,
        )
        self._update()
        session_id = self._session.session_id

        logger.info(f"Session {session_id}: requesting microphone permission")

        stack = AsyncExitStack()
        try:
            await self.microphone.acquire()
        except Exception as e:
            if self._abandoned(session_id, SessionState.REQUESTING_PERMISSION):
                logger.info(f"Session {session_id}: abandoned during permission request")
                return self._session
            if isinstance(e, PermissionDeniedError):
                logger.warning(f"Session {session_id}: microphone permission denied: {e}")
                message = PERMISSION_MESSAGE
            elif isinstance(e, DeviceUnavailableError):
                logger.warning(f"Session {session_id}: no microphone available: {e}")
                message = NO_DEVICE_MESSAGE
            else:
                logger.error(f"Session {session_id}: microphone acquisition failed: {e}")
                message = NO_DEVICE_MESSAGE
            await self._enter_error(ErrorKind.PERMISSION, message)
            return self._session
        stack.push_async_callback(self.microphone.release)

        # Torn down or replaced while waiting for permission
        if self._abandoned(session_id, SessionState.REQUESTING_PERMISSION):
            logger.info(f"Session {session_id}: abandoned during permission request")
            await self._discard_run(False, stack)
            return self._session

        self._mic_stack = stack
        self._update(transcript="", attempts=0, has_final=False)

        started = await self._start_recognizer()

        # Torn down or replaced while the recognizer was starting
        if self._abandoned(session_id, SessionState.REQUESTING_PERMISSION):
            logger.info(f"Session {session_id}: abandoned while starting recognition")
            await self._discard_run(started, stack)
            return self._session

        if not started:
            await self._enter_error(ErrorKind.RECOGNITION, START_FAILED_MESSAGE)
            return self._session

        self._update(state=SessionState.RECORDING)
        logger.info(f"Session {session_id}: recording")
        return self._session

    async def stop(self) -> RecordingSession:
        """
        Stop recording. Releases the microphone on every path.

        Raises:
            InvalidTransitionError: Not currently recording
        """
        if self._session.state != SessionState.RECORDING:
            raise InvalidTransitionError(f"Cannot stop while {self._session.state.value}")

        self._invalidate_token()
        self._update(state=SessionState.STOPPING)

        try:
            await self._stop_recognizer()
        except Exception as e:
            logger.error(f"Session {self._session.session_id}: error stopping recognition: {e}")
            await self._enter_error(ErrorKind.RECOGNITION, STOP_FAILED_MESSAGE)
            return self._session
        finally:
            await self._release_microphone()

        self._update(state=SessionState.RECORDED)
        logger.info(
            f"Session {self._session.session_id}: recorded "
            f"({len(self._session.transcript)} chars)"
        )
        return self._session

    async def analyze(self) -> SpeechMetrics:
        """
        Send the recorded transcript to the analysis sink.

        Raises:
            InvalidTransitionError: No recorded transcript yet
            EmptyTranscriptError: Transcript is blank
            AnalysisInProgressError: An analysis is already outstanding
        """
        if self._session.state != SessionState.RECORDED:
            raise InvalidTransitionError(f"Cannot analyze while {self._session.state.value}")
        return await self._dispatch_analysis(self._session.transcript)

    async def submit_manual_entry(self, text: str) -> SpeechMetrics:
        """
        Analyze user-typed text in place of a recording.

        Only available from the error state. The text is treated as a
        finalized transcript and follows the same path as analyze().

        Raises:
            InvalidTransitionError: Session is not in the error state
            EmptyTranscriptError: Text is blank
            AnalysisInProgressError: An analysis is already outstanding
        """
        if not self.manual_entry_enabled:
            raise InvalidTransitionError(
                f"Manual entry is only available after an error (state={self._session.state.value})"
            )
        if not isinstance(text, str) or not text.strip():
            raise EmptyTranscriptError("Please type what you said before submitting.")

        if not self._analysis_in_flight:
            self._update(transcript=text.strip(), has_final=True)
        return await self._dispatch_analysis(text.strip())

    async def close(self) -> None:
        """Tear down: stop recognition, release the microphone, stop the pump."""
        self._invalidate_token()

        if self._recognizer_running:
            try:
                await self._stop_recognizer()
            except Exception as e:
                logger.error(f"Error stopping recognition on teardown: {e}")

        await self._release_microphone()

        if self._session.is_active:
            self._update(state=SessionState.IDLE)

        if self._pump_task is not None:
            self._pump_task.cancel()
            try:
                await self._pump_task
            except asyncio.CancelledError:
                pass
            self._pump_task = None
            self._channel = None

    async def drain(self) -> None:
        """Wait until every queued recognition event has been applied."""
        if self._channel is not None:
            await self._channel.join()

    async def __aenter__(self) -> "RecordingSessionController":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Recognition channel
    # ------------------------------------------------------------------

    def _ensure_pump(self) -> None:
        if self._pump_task is None or self._pump_task.done():
            self._channel = asyncio.Queue()
            self._pump_task = asyncio.get_running_loop().create_task(self._pump())

    def _invalidate_token(self) -> None:
        self._token += 1

    def _post(self, token: int, event: RecognitionEvent) -> None:
        """Event sink handed to the recognizer; tags events with their run token."""
        if self._channel is None:
            logger.debug(f"Dropping {event.type.value} event: controller closed")
            return
        self._channel.put_nowait((token, event))

    async def _pump(self) -> None:
        while True:
            token, event = await self._channel.get()
            try:
                await self._apply(token, event)
            except Exception as e:
                logger.error(f"Unexpected error applying {event.type.value} event: {e}")
                if token == self._token and self._session.state == SessionState.RECORDING:
                    await self._enter_error(ErrorKind.RECOGNITION, START_FAILED_MESSAGE)
            finally:
                self._channel.task_done()

    async def _apply(self, token: int, event: RecognitionEvent) -> None:
        if token != self._token or self._session.state != SessionState.RECORDING:
            logger.debug(f"Ignoring stale {event.type.value} event")
            return

        if event.type == RecognitionEventType.RESULT:
            self._apply_result(event)
        elif event.type == RecognitionEventType.ERROR:
            await self._apply_error(event.error or "unknown")
        elif event.type == RecognitionEventType.END:
            # Engine stopped on its own (silence timeout); keep capturing
            session_id = self._session.session_id
            logger.info(f"Session {session_id}: recognition ended, restarting")
            self._recognizer_running = False
            started = await self._start_recognizer()
            if self._abandoned(session_id, SessionState.RECORDING):
                await self._discard_run(started)
            elif not started:
                await self._enter_error(ErrorKind.RECOGNITION, START_FAILED_MESSAGE)

    def _apply_result(self, event: RecognitionEvent) -> None:
        if event.is_final:
            self._update(transcript=event.text, has_final=True)
        elif not self._session.has_final:
            self._update(transcript=event.text)

    async def _apply_error(self, code: str) -> None:
        session_id = self._session.session_id

        if code in BENIGN_ERRORS:
            logger.info(f"Session {session_id}: benign recognition error '{code}'")
            return

        if code in TRANSIENT_ERRORS:
            attempts = self._session.attempts + 1
            self._update(attempts=attempts)

            if attempts >= self.max_attempts:
                logger.error(f"Session {session_id}: '{code}' error, giving up after {attempts} attempts")
                await self._enter_error(ErrorKind.TRANSIENT, ERROR_MESSAGES.get(code, NETWORK_MESSAGE))
                return

            logger.warning(
                f"Session {session_id}: transient '{code}' error "
                f"(attempt {attempts}/{self.max_attempts}), retrying in {self.retry_delay}s"
            )
            await self._restart_after_delay(session_id)
            return

        kind = ErrorKind.PERMISSION if code in PERMISSION_ERRORS else ErrorKind.RECOGNITION
        message = ERROR_MESSAGES.get(code, f"Speech recognition error: {code}")
        logger.error(f"Session {session_id}: non-transient recognition error '{code}'")
        await self._enter_error(kind, message)

    async def _restart_after_delay(self, session_id: int) -> None:
        self._invalidate_token()
        try:
            await self._stop_recognizer()
        except Exception as e:
            logger.debug(f"Ignoring error stopping failed recognition run: {e}")

        while True:
            await asyncio.sleep(self.retry_delay)

            # Stopped, torn down or replaced during the delay
            if self._abandoned(session_id, SessionState.RECORDING):
                return

            try:
                await self._launch_recognizer()
            except TransientRecognitionError as e:
                if self._abandoned(session_id, SessionState.RECORDING):
                    return
                # A restart that fails transiently counts as another attempt
                attempts = self._session.attempts + 1
                self._update(attempts=attempts)
                if attempts >= self.max_attempts:
                    logger.error(f"Session {session_id}: restart failed, giving up after {attempts} attempts: {e}")
                    await self._enter_error(ErrorKind.TRANSIENT, NETWORK_MESSAGE)
                    return
                logger.warning(f"Session {session_id}: restart failed (attempt {attempts}/{self.max_attempts}): {e}")
                continue
            except Exception as e:
                logger.error(f"Session {session_id}: error restarting recognition: {e}")
                if not self._abandoned(session_id, SessionState.RECORDING):
                    await self._enter_error(ErrorKind.RECOGNITION, START_FAILED_MESSAGE)
                return

            # Stopped or torn down while the recognizer was starting
            if self._abandoned(session_id, SessionState.RECORDING):
                logger.info(f"Session {session_id}: stopped while restarting recognition")
                await self._discard_run(True)
            return

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    async def _launch_recognizer(self) -> None:
        self._invalidate_token()
        emit = functools.partial(self._post, self._token)
        await self.recognizer.start(emit)
        self._recognizer_running = True

    async def _start_recognizer(self) -> bool:
        try:
            await self._launch_recognizer()
        except Exception as e:
            logger.error(f"Session {self._session.session_id}: error starting recognition: {e}")
            return False
        return True

    async def _stop_recognizer(self) -> None:
        self._recognizer_running = False
        await self.recognizer.stop()

    def _abandoned(self, session_id: int, expected: SessionState) -> bool:
        return self._session.session_id != session_id or self._session.state != expected

    async def _discard_run(self, started: bool, stack: Optional[AsyncExitStack] = None) -> None:
        """Undo a recognizer start that finished after its session was stopped or torn down."""
        self._invalidate_token()

        # A newer session owns the recognizer now
        if started and not self._session.is_active:
            try:
                await self._stop_recognizer()
            except Exception as e:
                logger.error(f"Error stopping abandoned recognition run: {e}")

        if stack is not None:
            if self._mic_stack is stack:
                self._mic_stack = None
            try:
                await stack.aclose()
            except Exception as e:
                logger.error(f"Error releasing microphone: {e}")

    async def _release_microphone(self) -> None:
        stack, self._mic_stack = self._mic_stack, None
        if stack is None:
            return
        try:
            await stack.aclose()
        except Exception as e:
            logger.error(f"Error releasing microphone: {e}")

    async def _enter_error(self, kind: ErrorKind, message: str) -> None:
        self._invalidate_token()

        if self._recognizer_running:
            try:
                await self._stop_recognizer()
            except Exception as e:
                logger.debug(f"Ignoring error stopping recognition after failure: {e}")

        await self._release_microphone()
        self._update(state=SessionState.ERROR, error_kind=kind, error_message=message)

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def _dispatch_analysis(self, transcript: str) -> SpeechMetrics:
        if self._analysis_in_flight:
            raise AnalysisInProgressError("Speech analysis already in progress")
        if not transcript or not transcript.strip():
            raise EmptyTranscriptError("Please record some speech first.")
        if self.analysis_sink is None:
            raise SessionError("No analysis sink configured")

        session_id = self._session.session_id
        self._analysis_in_flight = True
        try:
            result = await self.analysis_sink(transcript)
        finally:
            self._analysis_in_flight = False

        if self._session.session_id == session_id:
            self._update(analysis=result)
        return result


def adapter_sink(
    adapter,
    facial_metrics_provider: Optional[Callable[[], Union[FacialMetrics, Mapping[str, Any], None]]] = None,
    passage_provider: Optional[Callable[[], Optional[str]]] = None
) -> AnalysisSink:
    """
    Build an analysis sink around a SpeechAnalysisAdapter.

    The blocking adapter call runs in a worker thread so the event loop
    stays free for recognition callbacks.

    Args:
        adapter: SpeechAnalysisAdapter (or anything with the same analyze())
        facial_metrics_provider: Returns the latest facial metrics
        passage_provider: Returns the passage the user was asked to read

    Returns:
        Async callable transcript -> SpeechMetrics
    """
    async def sink(transcript: str) -> SpeechMetrics:
        facial = facial_metrics_provider() if facial_metrics_provider else None
        passage = passage_provider() if passage_provider else None
        return await asyncio.to_thread(adapter.analyze, transcript, facial, passage)

    return sink


def build_recording_controller(
    microphone: Microphone,
    recognizer: SpeechRecognizer,
    config: Mapping[str, Any],
    analysis_sink: Optional[AnalysisSink] = None
) -> RecordingSessionController:
    """Build a controller from the `recording` config section."""
    return RecordingSessionController(
        microphone,
        recognizer,
        analysis_sink=analysis_sink,
        max_attempts=int(get_nested_config(config, 'recording.max_attempts', DEFAULT_MAX_ATTEMPTS)),
        retry_delay=float(get_nested_config(config, 'recording.retry_delay_sec', DEFAULT_RETRY_DELAY_SEC)),
    )
