from .trial_entry import TrialEntry
from .trial_database import TrialDatabase

__all__ = ["TrialDatabase", "TrialEntry"]
