"""Form runtime: step segmentation, navigation, submission and the engine."""

from .engine import FormEngine, load_form_definition
from .navigation import NavigationState, StepNavigator, StepOutcome
from .segmenter import Segmentation, Step, default_step_title, segment
from .submission import (
    SubmissionErrorKind,
    SubmissionPipeline,
    SubmissionStatus,
    classify_submission_error,
)

__all__ = [
    "FormEngine",
    "NavigationState",
    "Segmentation",
    "Step",
    "StepNavigator",
    "StepOutcome",
    "SubmissionErrorKind",
    "SubmissionPipeline",
    "SubmissionStatus",
    "classify_submission_error",
    "default_step_title",
    "load_form_definition",
    "segment",
]
