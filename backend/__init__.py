"""
Photo gallery backend bootstrap.

Only the startup path lives here: settings import, slot installation and
logger initialization.
"""
