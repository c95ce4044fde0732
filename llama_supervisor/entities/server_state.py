from enum import Enum


class ServerState(str, Enum):
    """Probe result for an endpoint. Derived fresh on every probe, never cached."""

    STOPPED = "stopped"
    RUNNING_WRONG_MODEL = "running_wrong_model"
    RUNNING_CORRECT_MODEL = "running_correct_model"
