"""
Simulated DM counterparts.

Demo accounts have no real person behind them, so a canned answer is written back
after a short random delay. This is a stand-in for a second participant: the send
path only talks to a ReplyStrategy, and production can plug in NoReplyStrategy.
"""
import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from app.dms.schemas import DMChat

logger = logging.getLogger(__name__)

BOT_REPLIES: Dict[str, List[str]] = {
    "aisuluu": [
        "Привет! Как дела? 👋",
        "О, приятно познакомиться!",
        "Давай как-нибудь встретимся на кофе ☕",
        "Что нового?",
        "Звучит интересно! Расскажи больше",
    ],
    "timur": [
        "Йо! Что делаешь?",
        "Давай пересечемся на выходных",
        "Слышал про новый стартап? 🚀",
        "Как там твой проект?",
        "Я сейчас в Sierra, приходи!",
    ],
    "jibek": [
        "Привет! 😊",
        "Классная идея!",
        "Давай на хайкинг в выходные?",
        "Как настроение?",
        "Отличная погода сегодня, не думаешь?",
    ],
    "max": [
        "Hey! What's up?",
        "Sounds good to me!",
        "Let's grab coffee sometime",
        "Working on something cool, will share soon",
        "Check out this article I found",
    ],
    "aida": [
        "Hi there!",
        "Let's practice English together! 🗣️",
        "Have you been to Ala-Archa?",
        "I love that place too!",
        "Nice to meet you!",
    ],
}

GENERIC_REPLIES = ["Привет!", "Как дела?", "Интересно!", "👍", "Давай пообщаемся!"]


@dataclass(frozen=True)
class PlannedReply:
    body: str
    delay: float  # seconds


class ReplyStrategy:
    """Given the counterpart of a chat, optionally produce a delayed reply."""

    def plan_reply(self, chat: DMChat) -> Optional[PlannedReply]:
        raise NotImplementedError


class NoReplyStrategy(ReplyStrategy):
    def plan_reply(self, chat: DMChat) -> Optional[PlannedReply]:
        return None


class CannedReplyStrategy(ReplyStrategy):
    def __init__(
        self,
        pools: Dict[str, Sequence[str]] = None,
        fallback: Sequence[str] = None,
        min_delay: float = 2.0,
        max_delay: float = 4.0,
        reply_to_unknown: bool = False,
        rng: random.Random = None,
    ):
        if min_delay < 0 or max_delay < min_delay:
            raise ValueError("Invalid reply delay range")
        self.pools = {k.lower(): list(v) for k, v in (pools or BOT_REPLIES).items()}
        self.fallback = list(fallback or GENERIC_REPLIES)
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.reply_to_unknown = reply_to_unknown
        self.rng = rng or random.Random()

    def identity_of(self, chat: DMChat) -> Optional[str]:
        for candidate in (chat.user_name, chat.id):
            if candidate and candidate.lower() in self.pools:
                return candidate.lower()
        return None

    def plan_reply(self, chat: DMChat) -> Optional[PlannedReply]:
        identity = self.identity_of(chat)
        if identity is None and not self.reply_to_unknown:
            return None
        pool = self.pools.get(identity) or self.fallback
        return PlannedReply(
            body=self.rng.choice(pool),
            delay=self.rng.uniform(self.min_delay, self.max_delay),
        )


class ReplyScheduler:
    """
    Fire-and-forget timers for simulated replies.

    Tasks are neither cancelable nor awaited by the sender; the scheduler only keeps
    references until they finish. drain() waits for whatever is still in flight.
    """

    def __init__(self):
        self._tasks = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def schedule(self, delay: float, job: Callable[[], Awaitable[None]]) -> asyncio.Task:
        task = asyncio.create_task(self._run(delay, job))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @staticmethod
    async def _run(delay: float, job: Callable[[], Awaitable[None]]) -> None:
        await asyncio.sleep(delay)
        try:
            await job()
        except Exception:
            # Nobody awaits this task: report it here
            logger.exception("Simulated DM reply failed")

    async def drain(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


reply_scheduler = ReplyScheduler()


def build_reply_strategy(settings) -> ReplyStrategy:
    name = settings.DM_REPLY_STRATEGY.lower()
    if name == "none":
        return NoReplyStrategy()
    if name == "canned":
        return CannedReplyStrategy(
            min_delay=settings.DM_REPLY_MIN_DELAY,
            max_delay=settings.DM_REPLY_MAX_DELAY,
            reply_to_unknown=settings.DM_REPLY_TO_UNKNOWN,
        )
    raise ValueError(f"Unknown DM_REPLY_STRATEGY: {settings.DM_REPLY_STRATEGY}")
