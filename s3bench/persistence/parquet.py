"""
Parquet persistence for run reports.
"""

import os
import logging
from typing import List, Optional
from datetime import datetime

import pandas as pd

from s3bench.persistence.record import RunReport

logger = logging.getLogger(__name__)


class ParquetPersistence:
    """Collects run reports in memory and saves them to a Parquet file.

    Attributes:
        output_dir: Directory where Parquet files will be saved
        reports: Run reports accumulated during a sweep
    """

    def __init__(self, output_dir: str = "results"):
        """Initialize Parquet persistence.

        Args:
            output_dir: Directory for saving Parquet files (default: 'results')
        """
        self.output_dir: str = output_dir
        self.reports: List[RunReport] = []

        os.makedirs(output_dir, exist_ok=True)

    def store_report(self, report: RunReport) -> None:
        self.reports.append(report)

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame([report.to_dict() for report in self.reports])

    def save_to_file(self, filename_prefix: str = "sweep") -> Optional[str]:
        """Save all reports to a Parquet file.

        Args:
            filename_prefix: Prefix for the generated filename (default: 'sweep')

        Returns:
            Path to the saved file, or None if no reports to save
        """
        if not self.reports:
            return None

        logger.info(f"Saving {len(self.reports)} run reports to file")
        df = self.to_dataframe()

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = f"{filename_prefix}_{timestamp}.parquet"
        filepath = os.path.join(self.output_dir, filename)

        df.to_parquet(filepath, index=False)

        return filepath
