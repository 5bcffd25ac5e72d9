"""
Lead-note player for zone triggers.
"""
from typing import Dict, Optional, Tuple

from audio.engine import AudioOutput
from core.models import NoteTrigger, SoundSettings
from instruments.profiles import DEFAULT_LEAD, LEAD_INSTRUMENTS


class LeadPlayer:
    """
    Plays one note per zone trigger.

    A zone whose previous note is still sounding is not retriggered
    unless forced.
    """

    def __init__(self, audio: AudioOutput):
        self.audio = audio
        # zone id -> (handle, end time)
        self._sounding: Dict[int, Tuple[int, float]] = {}

    def play(self, trigger: NoteTrigger, settings: SoundSettings,
             force: bool = False) -> Optional[int]:
        """
        Sound trigger with the profile's lead instrument, volume and duration.

        Unknown instrument names fall back to the default lead.

        Returns:
            Output handle, or None if the zone was still sounding
        """
        now = self.audio.current_time()
        self._expire(now)
        if not force and trigger.zone_id in self._sounding:
            return None
        if force and trigger.zone_id in self._sounding:
            self.stop(trigger.zone_id)

        profile = LEAD_INSTRUMENTS.get(settings.instrument, LEAD_INSTRUMENTS[DEFAULT_LEAD])
        envelope = profile.envelope.scaled(settings.volume)
        handle = self.audio.play(trigger.frequency, now, settings.duration,
                                 envelope, profile.timbre)
        self._sounding[trigger.zone_id] = (handle, now + settings.duration)
        return handle

    def is_playing(self, zone_id: int) -> bool:
        self._expire(self.audio.current_time())
        return zone_id in self._sounding

    def playing_count(self) -> int:
        self._expire(self.audio.current_time())
        return len(self._sounding)

    def stop(self, zone_id: int):
        entry = self._sounding.pop(zone_id, None)
        if entry is not None:
            self.audio.stop(entry[0])

    def stop_all(self):
        for zone_id in list(self._sounding):
            self.stop(zone_id)

    def _expire(self, now: float):
        for zone_id, (_, end_time) in list(self._sounding.items()):
            if now >= end_time:
                del self._sounding[zone_id]
