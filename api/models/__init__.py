from models.policy_settings import PolicySettings
from models.subscription import Subscription
from models.form import FormConfig, Submission, FormCreationRecord

__all__ = [
    "PolicySettings", "Subscription",
    "FormConfig", "Submission", "FormCreationRecord",
]
