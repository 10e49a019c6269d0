from .api_client import ApiError, NetworkError, TrainerSyncClient
from .workflow import LeaveApplicationWorkflow, SubmissionResult

__all__ = [
    "ApiError",
    "NetworkError",
    "TrainerSyncClient",
    "LeaveApplicationWorkflow",
    "SubmissionResult",
]
