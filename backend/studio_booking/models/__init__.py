from .appointments import ACTIVE_STATUSES, Appointments, Base, metadata

__all__ = ["ACTIVE_STATUSES", "Appointments", "Base", "metadata"]
