from .messages import ERROR_MESSAGES, STATUS_LABELS, status_label, translate

__all__ = ["ERROR_MESSAGES", "STATUS_LABELS", "status_label", "translate"]
