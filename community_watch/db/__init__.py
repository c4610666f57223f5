"""
Database module for Community Watch

Contains first-run bootstrap of the default administrator and email groups.
"""
from community_watch.db.bootstrap import bootstrap, ensure_default_admin, ensure_default_email_groups

__all__ = ["bootstrap", "ensure_default_admin", "ensure_default_email_groups"]
