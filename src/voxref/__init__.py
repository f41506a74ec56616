"""
voxref - spoken references to source artifacts

Keeps a live index of the files, folders, components and functions in a
source tree and resolves free-form transcripts into references to them.
"""

__version__ = "0.1.0"
__all__ = [
    "Config",
    "VoxrefService",
    "TranscriptMatchResult",
    "MatchCandidate",
    "VoxrefError",
]

from voxref.config import Config
from voxref.errors import VoxrefError
from voxref.models import MatchCandidate, TranscriptMatchResult
from voxref.service import VoxrefService
