"""
Storylet autoplay components:
- AutomationConfig: load .env config
- AutomationSession: start/stop/is_running around one sequencer run
- Sequencer: locate -> act -> wait -> classify state machine
- OutcomeClassifier: success / failure / goal / pending verdicts
- Step sources: SequenceSource, CardSource, PrioritySource, RepeatSource
- ActionRecorder: record operator clicks as ActionRecords
- ItemTracker: item quantity goals from intercepted branch responses
"""

from .classifier import ClassifierSettings, OutcomeClassifier, Verdict
from .config import AutomationConfig
from .errors import AutomationError, ConfigInvalid
from .items import ItemTracker, load_item_targets
from .preferences import PreferenceStore, load_failure_policy, save_failure_policy
from .recorder import ActionRecorder, describe_element
from .records import (
    ActionRecord,
    BranchTarget,
    CardRule,
    load_branch_targets,
    load_card_rules,
    load_recording,
    read_config_text,
    save_recording,
)
from .sequencer import Sequencer
from .session import AutomationSession, Trigger
from .sources import CardSource, PrioritySource, RepeatSource, SequenceSource, StepSource
from .state import Phase, SequencerState, StopReason

__all__ = [
    "AutomationConfig", "AutomationSession", "Trigger", "Sequencer",
    "OutcomeClassifier", "ClassifierSettings", "Verdict",
    "StepSource", "SequenceSource", "CardSource", "PrioritySource", "RepeatSource",
    "ActionRecorder", "describe_element",
    "ItemTracker", "load_item_targets",
    "ActionRecord", "BranchTarget", "CardRule",
    "load_branch_targets", "load_card_rules", "load_recording", "read_config_text", "save_recording",
    "PreferenceStore", "load_failure_policy", "save_failure_policy",
    "Phase", "SequencerState", "StopReason",
    "AutomationError", "ConfigInvalid",
]
