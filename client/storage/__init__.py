from .output import STDOUT_TARGET, FileSink, OutputSink, StdoutSink, open_sink

__all__ = ["OutputSink", "FileSink", "StdoutSink", "STDOUT_TARGET", "open_sink"]
