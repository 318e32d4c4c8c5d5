"""Timecode rendering shared by the timed formats.

All renderers work from whole milliseconds (``round(seconds * 1000)``)
and floor each field from there, so binary float noise like
``0.29 * 100 == 28.999...`` never leaks into the output. A value within
half a millisecond of the next field boundary rounds up to it (1.9996 s
is ``[00:02.00]``).
"""

from __future__ import annotations


def whole_ms(seconds: float) -> int:
    """Non-negative integer milliseconds for ``seconds``."""
    return max(0, int(round(seconds * 1000)))


def _hms(seconds: float):
    total_ms = whole_ms(seconds)
    total_s, millis = divmod(total_ms, 1000)
    hours, remainder = divmod(total_s, 3600)
    minutes, secs = divmod(remainder, 60)
    return hours, minutes, secs, millis


def srt_timestamp(seconds: float) -> str:
    """``HH:MM:SS,mmm``"""
    hours, minutes, secs, millis = _hms(seconds)
    return "{:02d}:{:02d}:{:02d},{:03d}".format(hours, minutes, secs, millis)


def ttml_timestamp(seconds: float) -> str:
    """``HH:MM:SS.mmm``"""
    hours, minutes, secs, millis = _hms(seconds)
    return "{:02d}:{:02d}:{:02d}.{:03d}".format(hours, minutes, secs, millis)


def lrc_timestamp(seconds: float) -> str:
    """``[MM:SS.hh]`` — minutes keep counting past 59 for long audio."""
    total_s, millis = divmod(whole_ms(seconds), 1000)
    minutes, secs = divmod(total_s, 60)
    return "[{:02d}:{:02d}.{:02d}]".format(minutes, secs, millis // 10)
