"""Concrete adapters for the interfaces in ``sitechat.interfaces``."""
