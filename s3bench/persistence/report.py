"""
Human-readable, CSV-like report lines on standard output.
"""

import sys
from typing import TextIO

from s3bench.persistence.record import RunReport

HEADER_COLUMNS = ("Time", "Bytes downloaded", "MB downloaded", "Throughput")
LATENCY_COLUMNS = ("Avg first byte", "Avg last byte")


class ReportWriter:
    """Prints one header and then one line per finished run."""

    def __init__(self, stream: TextIO = None, track_latency: bool = True):
        self.stream = stream if stream is not None else sys.stdout
        self.track_latency = track_latency
        self.header_written = False
        self.lines_written = 0

    def header(self) -> str:
        columns = HEADER_COLUMNS + LATENCY_COLUMNS if self.track_latency else HEADER_COLUMNS
        return ", ".join(columns)

    def format(self, report: RunReport) -> str:
        fields = [
            f"{report.elapsed_seconds:9.4f} s",
            f"{report.total_bytes} B",
            f"{report.total_mb:.1f} MB",
            f"{report.throughput_mb_s:6.1f} MB/s",
        ]
        if self.track_latency:
            fields.append(f"{report.avg_first_byte_ms or 0.0:5.0f} ms")
            fields.append(f"{report.avg_last_byte_ms or 0.0:5.0f} ms")
        return ", ".join(fields)

    def write_header(self):
        if not self.header_written:
            print(self.header(), file=self.stream, flush=True)
            self.header_written = True

    def write(self, report: RunReport):
        self.write_header()
        print(self.format(report), file=self.stream, flush=True)
        self.lines_written += 1
