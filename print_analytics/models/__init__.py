from .database import Base, Job, Feedback, Project, Setting, AuthLog, COLLECTION_MODELS

__all__ = ["Base", "Job", "Feedback", "Project", "Setting", "AuthLog", "COLLECTION_MODELS"]
