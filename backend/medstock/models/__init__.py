from medstock.models.session_entry import SessionEntry

__all__ = ["SessionEntry"]
