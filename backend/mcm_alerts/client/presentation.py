"""
Delivery Presentation Adapter

Turns a delivered event into something the user sees and hears: a native
notification when the environment allows it, otherwise an in-page banner,
plus a priority-dependent tone and vibration. Each event id is presented
at most once per session.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional

from mcm_alerts.client.dedup import SeenIds
from mcm_alerts.client.messages import IncomingEvent
from mcm_alerts.client.realtime import LoopScheduler, Scheduler, TimerHandle
from mcm_alerts.core.priority import Priority, profile_for
from mcm_alerts.services.payload import event_tag

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Tone:
    frequency: int  # Hz
    duration_ms: int
    volume: float


# Higher priority: higher pitch, longer, louder
PRIORITY_TONES: Dict[Priority, Tone] = {
    Priority.LOW: Tone(frequency=400, duration_ms=400, volume=0.1),
    Priority.MEDIUM: Tone(frequency=600, duration_ms=500, volume=0.2),
    Priority.HIGH: Tone(frequency=800, duration_ms=1000, volume=0.3),
}


class PresentationChannel(str, Enum):
    NATIVE = "native"
    BANNER = "banner"


@dataclass(frozen=True)
class Presentation:
    event: IncomingEvent
    channel: PresentationChannel
    tag: str
    require_interaction: bool
    tone: Tone
    vibrate: List[int]


class PresentationEnvironment(ABC):
    """What the host (browser shell, desktop app, terminal) can do"""
    
    @abstractmethod
    def permission_granted(self) -> bool: ...
    
    @abstractmethod
    def has_background_registration(self) -> bool: ...
    
    @abstractmethod
    def show(self, presentation: Presentation) -> None: ...
    
    @abstractmethod
    def close(self, presentation: Presentation) -> None: ...
    
    @abstractmethod
    def play_tone(self, tone: Tone) -> None: ...
    
    @abstractmethod
    def vibrate(self, pattern: List[int]) -> None: ...


class LoggingEnvironment(PresentationEnvironment):
    """Headless environment: presentations are written to the log"""
    
    def __init__(self, permission: bool = False, background_registration: bool = False):
        self.permission = permission
        self.background_registration = background_registration
    
    def permission_granted(self) -> bool:
        return self.permission
    
    def has_background_registration(self) -> bool:
        return self.background_registration
    
    def show(self, presentation: Presentation) -> None:
        event = presentation.event
        logger.info(
            f"[{presentation.channel.value}] [{event.priority.value.upper()}] {event.title}: {event.body}"
        )
    
    def close(self, presentation: Presentation) -> None:
        logger.debug(f"Closed {presentation.tag}")
    
    def play_tone(self, tone: Tone) -> None:
        logger.debug(f"Tone {tone.frequency}Hz for {tone.duration_ms}ms at {tone.volume}")
    
    def vibrate(self, pattern: List[int]) -> None:
        logger.debug(f"Vibrate {pattern}")


class PresentationAdapter:
    
    def __init__(
        self,
        environment: Optional[PresentationEnvironment] = None,
        scheduler: Optional[Scheduler] = None,
        auto_dismiss_seconds: float = 5.0,
        seen_capacity: int = 200,
        on_acknowledge: Optional[Callable[[object], Awaitable[None]]] = None,
    ):
        self.environment = environment or LoggingEnvironment()
        self._scheduler = scheduler or LoopScheduler()
        self.auto_dismiss_seconds = auto_dismiss_seconds
        self._presented = SeenIds(seen_capacity)
        self._active: Dict[str, Presentation] = {}
        self._dismiss_timers: Dict[str, TimerHandle] = {}
        self._on_acknowledge = on_acknowledge
    
    @property
    def active(self) -> List[Presentation]:
        """Presentations currently on screen"""
        return list(self._active.values())
    
    def choose_channel(self) -> PresentationChannel:
        if self.environment.permission_granted() and self.environment.has_background_registration():
            return PresentationChannel.NATIVE
        return PresentationChannel.BANNER
    
    def present(self, event: IncomingEvent) -> Optional[Presentation]:
        """Show an event. Returns None when this id was already presented."""
        if not self._presented.add(event.id):
            return None
        
        profile = profile_for(event.priority)
        presentation = Presentation(
            event=event,
            channel=self.choose_channel(),
            tag=event_tag(event.id),
            require_interaction=profile.require_interaction,
            tone=PRIORITY_TONES[event.priority],
            vibrate=profile.vibrate_list(),
        )
        key = str(event.id)
        self._active[key] = presentation
        self.environment.show(presentation)
        self.environment.play_tone(presentation.tone)
        self.environment.vibrate(presentation.vibrate)
        
        if not presentation.require_interaction:
            self._dismiss_timers[key] = self._scheduler.call_later(
                self.auto_dismiss_seconds,
                lambda: self._auto_dismiss(key),
            )
        return presentation
    
    def dismiss(self, event_id) -> bool:
        key = str(event_id)
        timer = self._dismiss_timers.pop(key, None)
        if timer is not None:
            timer.cancel()
        presentation = self._active.pop(key, None)
        if presentation is None:
            return False
        self.environment.close(presentation)
        return True
    
    async def acknowledge(self, event_id) -> bool:
        """Dismiss and report the acknowledgment upstream"""
        dismissed = self.dismiss(event_id)
        if self._on_acknowledge is not None:
            await self._on_acknowledge(event_id)
        return dismissed
    
    def clear(self):
        for key in list(self._active):
            self.dismiss(key)
    
    def _auto_dismiss(self, key: str):
        self._dismiss_timers.pop(key, None)
        presentation = self._active.pop(key, None)
        if presentation is not None:
            self.environment.close(presentation)
