"""
Live match orchestrator for Live Crease.
Keeps the latest match snapshot, commentary, statistics and chat for one
tracked match, refreshes them on independent cadences while the match is
live, and notifies listeners after every state change.
"""
from __future__ import annotations

import asyncio
import signal
import time
from collections import deque
from typing import Any, Awaitable, Callable, Optional

from shared.config import Settings, get_settings
from shared.models.domain import (
    CHAT_MESSAGE_MAX_LEN,
    ChatMessage,
    CommentaryEntry,
    LiveMatchState,
    MatchSnapshot,
    MatchStatisticsBundle,
    utcnow,
)
from shared.models.enums import ChatOrigin, Feed, MatchStatus, OrchestratorPhase
from shared.utils.logging import get_logger, setup_logging
from shared.utils.metrics import start_metrics_server

from builder.timeline.synthetic import MatchSynthesizer
from catalog.service import ChannelCatalog
from ingest.providers.registry import MultiSourceResolver, build_adapters
from scheduler.engine.polling import IntervalScheduler

logger = get_logger(__name__)

SNAPSHOT_ERROR = "Failed to fetch live match data"
LOCAL_CHAT_USER = "You"
LOCAL_CHAT_LIMIT = 50

# Feeds refreshed on a cadence while the match is live; stats only on refetch_all.
POLLED_FEEDS = (Feed.LIVE_MATCH, Feed.COMMENTARY, Feed.LIVE_CHAT)

Listener = Callable[[LiveMatchState], Any]


class LiveMatchOrchestrator:
    """
    Owns the aggregate view-state for the tracked match.

    Each feed keeps a monotonic request counter. A completed fetch is applied
    only if it was issued after the last applied one for that feed, so a slow
    response can never overwrite a newer one.
    """

    def __init__(self, resolver: MultiSourceResolver, settings: Settings | None = None) -> None:
        self._resolver = resolver
        self._settings = settings or get_settings()
        self._state = LiveMatchState()
        self._remote_chat: list[ChatMessage] = []
        self._local_chat: deque[ChatMessage] = deque(maxlen=LOCAL_CHAT_LIMIT)
        self._listeners: list[Listener] = []
        self._issued: dict[Feed, int] = {f: 0 for f in Feed}
        self._applied: dict[Feed, int] = {f: 0 for f in Feed}
        self._active = False

        self._polls: dict[Feed, IntervalScheduler] = {
            Feed.LIVE_MATCH: IntervalScheduler(
                "live_match", self.refresh_match, self._settings.live_match_poll_s, enabled=False,
            ),
            Feed.COMMENTARY: IntervalScheduler(
                "commentary", self.refresh_commentary, self._settings.commentary_poll_s, enabled=False,
            ),
            Feed.LIVE_CHAT: IntervalScheduler(
                "live_chat", self.refresh_chat, self._settings.chat_poll_s, enabled=False,
            ),
        }

    @property
    def state(self) -> LiveMatchState:
        return self._state

    @property
    def polls(self) -> dict[Feed, IntervalScheduler]:
        return self._polls

    @staticmethod
    def should_poll(status: Optional[MatchStatus]) -> bool:
        """Transition guard: schedules run only while the match is live."""
        return status == MatchStatus.LIVE

    # ── Listeners ───────────────────────────────────────────────────────

    def add_listener(self, callback: Listener) -> Callable[[], None]:
        """Register a state listener; returns a function that removes it."""
        self._listeners.append(callback)

        def remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    def _set_state(self, **changes: Any) -> None:
        self._state = self._state.model_copy(update=changes)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception as exc:
                logger.warning("state_listener_failed", error=str(exc), exc_info=True)

    # ── Lifecycle ───────────────────────────────────────────────────────

    async def start(self) -> None:
        """Initial full fetch; schedules are then gated on the snapshot status."""
        self._active = True
        await self.refetch_all()
        self._gate()
        logger.info(
            "orchestrator_started",
            status=self._state.match.status.value if self._state.match else None,
            polling=any(p.running for p in self._polls.values()),
        )

    async def stop(self) -> None:
        self._active = False
        for poll in self._polls.values():
            poll.stop()
        await asyncio.gather(*(p.wait_idle() for p in self._polls.values()))
        logger.info("orchestrator_stopped")

    def _gate(self) -> None:
        if not self._active:
            return
        match = self._state.match
        enabled = self.should_poll(match.status if match else None)
        for feed, poll in self._polls.items():
            if poll.enabled != enabled or poll.running != enabled:
                logger.info("poll_gated", poll=feed.value, enabled=enabled)
            poll.set_enabled(enabled)

    # ── Fetching ────────────────────────────────────────────────────────

    async def refetch_all(self) -> None:
        """Fetch every feed concurrently; each slot is applied as its fetch completes."""
        phase = OrchestratorPhase.LOADING if self._state.phase == OrchestratorPhase.IDLE else self._state.phase
        self._set_state(loading=True, phase=phase)
        try:
            await asyncio.gather(
                self.refresh_match(),
                self.refresh_commentary(),
                self.refresh_stats(),
                self.refresh_chat(),
            )
        finally:
            # Ready only once a snapshot has been seen; until then the view stays blocked.
            ready = self._state.match is not None
            self._set_state(loading=False, phase=OrchestratorPhase.READY if ready else self._state.phase)

    # Alias kept for consumers that think in terms of a manual refresh.
    refetch = refetch_all

    async def refresh_match(self) -> None:
        await self._fetch(Feed.LIVE_MATCH, self._resolver.get_live_match, self._apply_match)

    async def refresh_commentary(self) -> None:
        await self._fetch(Feed.COMMENTARY, self._resolver.get_commentary, self._apply_commentary)

    async def refresh_stats(self) -> None:
        await self._fetch(Feed.MATCH_STATS, self._resolver.get_match_stats, self._apply_stats)

    async def refresh_chat(self) -> None:
        await self._fetch(Feed.LIVE_CHAT, self._resolver.get_live_chat, self._apply_chat)

    async def _fetch(
        self,
        feed: Feed,
        fetch: Callable[[], Awaitable[Any]],
        apply: Callable[[Any], None],
    ) -> None:
        self._issued[feed] += 1
        request = self._issued[feed]
        try:
            data = await fetch()
        except Exception as exc:
            if request <= self._applied[feed]:
                logger.debug("stale_failure_ignored", feed=feed.value, request=request)
                return
            self._applied[feed] = request
            logger.error("feed_fetch_failed", feed=feed.value, error=str(exc))
            if feed == Feed.LIVE_MATCH:
                self._set_state(error=SNAPSHOT_ERROR)
            return

        if request <= self._applied[feed]:
            logger.debug("stale_result_dropped", feed=feed.value, request=request, applied=self._applied[feed])
            return
        self._applied[feed] = request
        apply(data)

    def _apply_match(self, snapshot: MatchSnapshot) -> None:
        changes: dict[str, Any] = {"match": snapshot, "error": None, "last_update": utcnow()}
        # A standalone refresh that lands the first snapshot completes the initial load.
        if self._state.phase == OrchestratorPhase.LOADING and not self._state.loading:
            changes["phase"] = OrchestratorPhase.READY
        self._set_state(**changes)
        self._gate()

    def _apply_commentary(self, entries: list[CommentaryEntry]) -> None:
        self._set_state(commentary=list(entries))

    def _apply_stats(self, stats: MatchStatisticsBundle) -> None:
        self._set_state(stats=stats)

    def _apply_chat(self, messages: list[ChatMessage]) -> None:
        self._remote_chat = list(messages)
        self._set_state(chat=self._merged_chat())

    # ── Chat ────────────────────────────────────────────────────────────

    def _merged_chat(self) -> list[ChatMessage]:
        return sorted([*self._local_chat, *self._remote_chat], key=lambda m: m.timestamp, reverse=True)

    def post_chat_message(self, text: str) -> ChatMessage:
        """
        Echo a locally authored message into the chat view.

        Raises:
            ValueError: If the trimmed text is empty or longer than the chat limit.
        """
        message = (text or "").strip()
        if not message:
            raise ValueError("chat message is empty")
        if len(message) > CHAT_MESSAGE_MAX_LEN:
            raise ValueError(f"chat message exceeds {CHAT_MESSAGE_MAX_LEN} characters")

        entry = ChatMessage(
            id=f"local-{int(time.time() * 1000)}",
            user=LOCAL_CHAT_USER,
            message=message,
            timestamp=utcnow(),
            origin=ChatOrigin.OTHER,
        )
        self._local_chat.append(entry)
        self._set_state(chat=self._merged_chat())
        return entry


def build_services(
    settings: Settings | None = None,
) -> tuple[MultiSourceResolver, LiveMatchOrchestrator, ChannelCatalog]:
    """Composition root: wire adapters, synthesizer, resolver, orchestrator and catalog."""
    settings = settings or get_settings()
    synthesizer = MatchSynthesizer(settings)
    resolver = MultiSourceResolver(build_adapters(settings), synthesizer, settings)
    orchestrator = LiveMatchOrchestrator(resolver, settings)
    catalog = ChannelCatalog(resolver)
    return resolver, orchestrator, catalog


async def main() -> None:
    """Orchestrator service entrypoint."""
    settings = get_settings()
    setup_logging("scheduler", settings=settings)
    start_metrics_server(settings)

    resolver, orchestrator, _ = build_services(settings)
    await resolver.start()

    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown.set)

    def log_state(state: LiveMatchState) -> None:
        if state.match is not None and not state.loading:
            score = state.match.active_score
            logger.debug(
                "match_state_updated",
                match_id=state.match.id,
                score=f"{score.runs}/{score.wickets}",
                overs=f"{score.overs}.{score.balls}",
                error=state.error,
            )

    orchestrator.add_listener(log_state)

    logger.info("scheduler_service_started", tracked_teams=settings.tracked_teams)
    try:
        await orchestrator.start()
        await shutdown.wait()
    finally:
        await orchestrator.stop()
        await resolver.close()
        logger.info("scheduler_service_stopped")


if __name__ == "__main__":
    asyncio.run(main())
