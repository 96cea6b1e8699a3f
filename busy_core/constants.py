"""Constants for Busy - magic strings, numbers, and configuration."""

__all__ = [
    "STATE_ACTIVE",
    "STATE_PAUSED",
    "STATE_STOPPED",
    "VALID_STATES",
    "CURRENT_STATES",
    "KIND_TASK",
    "KIND_PROJECT",
    "KIND_TAG",
    "VALID_KINDS",
    "MAX_ID_RETRIES",
    "SHORT_ID_MIN_LENGTH",
    "LOCK_TIMEOUT",
    "SNAPSHOT_VERSION",
    "SNAPSHOT_FILENAME",
    "ANCESTOR_FILENAME",
    "LOCK_FILENAME",
    "ENV_HOME",
    "ENV_REMOTE",
    "ENV_LOG",
    "TAG_PREFIX",
]

# Task states
STATE_ACTIVE = "active"
STATE_PAUSED = "paused"
STATE_STOPPED = "stopped"
VALID_STATES = {STATE_ACTIVE, STATE_PAUSED, STATE_STOPPED}

# States that make a task "the current task"
CURRENT_STATES = {STATE_ACTIVE, STATE_PAUSED}

# Entity classes
KIND_TASK = "task"
KIND_PROJECT = "project"
KIND_TAG = "tag"
VALID_KINDS = (KIND_TASK, KIND_PROJECT, KIND_TAG)

# ID generation
MAX_ID_RETRIES = 10
SHORT_ID_MIN_LENGTH = 4

# File locking
LOCK_TIMEOUT = 5.0

# Snapshot files
SNAPSHOT_VERSION = 1
SNAPSHOT_FILENAME = "tasks.json"
ANCESTOR_FILENAME = "ancestor.json"
LOCK_FILENAME = ".lock"

# Environment
ENV_HOME = "BUSY_HOME"
ENV_REMOTE = "BUSY_REMOTE"
ENV_LOG = "BUSY_LOG"

# CLI tag marker, e.g. "+work"
TAG_PREFIX = "+"
