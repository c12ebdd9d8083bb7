from cacs_wizard.wizard.boundary import AnalysisBoundary
from cacs_wizard.wizard.controller import StepController
from cacs_wizard.wizard.session import Notification, WizardSession, build_session
from cacs_wizard.wizard.state import MappingPhase, WizardState
from cacs_wizard.wizard.steps import Step

__all__ = [
    "AnalysisBoundary",
    "MappingPhase",
    "Notification",
    "Step",
    "StepController",
    "WizardSession",
    "WizardState",
    "build_session",
]
