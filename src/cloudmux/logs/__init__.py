"""Polling jobs that stream a log group onto the wire."""

from cloudmux.logs.registry import LogTailRegistry
from cloudmux.logs.session import LogTailSession, LogTailSessionInfo, LogTailStatus
from cloudmux.logs.source import AwsCliLogSource, LogEvent, LogSource

__all__ = [
    "AwsCliLogSource",
    "LogEvent",
    "LogSource",
    "LogTailRegistry",
    "LogTailSession",
    "LogTailSessionInfo",
    "LogTailStatus",
]
