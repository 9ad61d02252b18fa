"""Capture — bounded ffmpeg recordings driven by trigger fires."""

from streamrec.core.capture.executor import CaptureExecutor
from streamrec.core.capture.ffmpeg import CaptureProcess, FfmpegRunner

__all__ = ["CaptureExecutor", "CaptureProcess", "FfmpegRunner"]
