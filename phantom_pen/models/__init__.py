from .user import User
from .capture import Capture
from .narrative_entry import NarrativeEntry
from .synthesis_schedule import SynthesisSchedule, ScheduleStatus
from .voice_upload import VoiceUpload, UploadStatus

__all__ = [
    "User",
    "Capture",
    "NarrativeEntry",
    "SynthesisSchedule",
    "ScheduleStatus",
    "VoiceUpload",
    "UploadStatus",
]
