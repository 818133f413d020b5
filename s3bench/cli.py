"""
Command-line interface for the S3 download benchmark.
"""

import argparse
import logging
import sys

import uvloop

from s3bench.commands.benchmark import BenchmarkRunner
from s3bench.commands.uploader import Uploader
from s3bench.configuration import (
    AWS_REGION,
    BUCKET_NAME,
    DEFAULT_LOG_LEVEL,
    DEFAULT_SAMPLES,
    DEFAULT_WORKERS,
    KEY_FAN_OUT_WIDTH,
    KEY_PREFIX,
    LOG_FORMAT,
    MODE_ASYNC,
    MODES,
    REQUEST_TIMEOUT_SECONDS,
    S3_ENDPOINT,
    SWEEP_MAX_WORKERS,
    SWEEP_STEP,
)
from s3bench.errors import BenchmarkError, ConfigError
from s3bench.persistence.parquet import ParquetPersistence
from s3bench.persistence.prom import SimplePrometheusExporter
from s3bench.persistence.record import RunConfig, SweepConfig

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


class S3BenchCLI:
    """CLI for creating test objects and measuring download throughput."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self):
        """Create the main argument parser."""
        parser = argparse.ArgumentParser(
            prog="s3bench",
            description="S3 download throughput benchmark",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # Upload 40 objects of 8 MB to the test bucket
  s3bench create --file-size 8 --num-files 40

  # One run: 16 workers sharing 200 downloads
  s3bench download --workers 16 --samples 200

  # Sweep 5, 10, ... 80 workers, 500 downloads per run, on threads
  s3bench sweep --start-num-workers 5 --samples 500 --mode threads
            """,
        )
        parser.add_argument("--log-level", default=DEFAULT_LOG_LEVEL,
                            choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                            help=f"Logging level on stderr (default: {DEFAULT_LOG_LEVEL})")

        location = argparse.ArgumentParser(add_help=False)
        location.add_argument("--bucket", default=BUCKET_NAME,
                              help=f"Bucket holding the test objects (default: {BUCKET_NAME})")
        location.add_argument("--key-prefix", default=KEY_PREFIX,
                              help=f"Common prefix of the test object keys (default: {KEY_PREFIX})")
        location.add_argument("--region", default=AWS_REGION,
                              help=f"Bucket region (default: {AWS_REGION})")
        location.add_argument("--endpoint-url", default=S3_ENDPOINT or None,
                              help="S3-compatible endpoint URL (default: AWS)")

        run = argparse.ArgumentParser(add_help=False)
        run.add_argument("--samples", type=int, default=DEFAULT_SAMPLES,
                         help=f"Downloads shared by all workers of one run (default: {DEFAULT_SAMPLES})")
        run.add_argument("--mode", choices=MODES, default=MODE_ASYNC,
                         help=f"Run workers as asyncio tasks or OS threads (default: {MODE_ASYNC})")
        run.add_argument("--fan-out", type=int, default=KEY_FAN_OUT_WIDTH,
                         help=f"Number of distinct objects workers rotate over (default: {KEY_FAN_OUT_WIDTH})")
        run.add_argument("--request-timeout", type=float, default=REQUEST_TIMEOUT_SECONDS,
                         help=f"Per-download timeout in seconds, 0 disables (default: {REQUEST_TIMEOUT_SECONDS:g})")
        run.add_argument("--no-latency", action="store_true",
                         help="Do not track first-byte and last-byte latency")
        run.add_argument("--output-dir", default=None,
                         help="Also save run reports to a Parquet file in this directory")
        run.add_argument("--prometheus-port", type=int, default=None,
                         help="Expose live metrics on this port")

        subparsers = parser.add_subparsers(dest="command", help="Available commands")

        create_parser = subparsers.add_parser("create", parents=[location], help="Upload test objects")
        create_parser.add_argument("--file-size", type=int, required=True, help="File size in MB")
        create_parser.add_argument("--num-files", type=int, required=True, help="Number of objects to upload")

        download_parser = subparsers.add_parser("download", parents=[location, run],
                                                help="Run the download benchmark once")
        download_parser.add_argument("--workers", type=int, default=DEFAULT_WORKERS,
                                     help=f"Number of concurrent workers (default: {DEFAULT_WORKERS})")

        sweep_parser = subparsers.add_parser("sweep", parents=[location, run],
                                             help="Repeat the download benchmark over a range of worker counts")
        sweep_parser.add_argument("--start-num-workers", type=int, required=True,
                                  help="Worker count of the first run")
        sweep_parser.add_argument("--step", type=int, default=SWEEP_STEP,
                                  help=f"Worker count increment between runs (default: {SWEEP_STEP})")
        sweep_parser.add_argument("--max-workers", type=int, default=SWEEP_MAX_WORKERS,
                                  help=f"Upper bound on the worker count, exclusive (default: {SWEEP_MAX_WORKERS})")

        return parser

    @staticmethod
    def _configure_logging(level: str):
        # Only if not already configured
        if not logging.root.handlers:
            logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)
        else:
            logging.root.setLevel(level)

    @staticmethod
    def _run_config(args, workers: int) -> RunConfig:
        return RunConfig(
            workers=workers,
            samples=args.samples,
            bucket=args.bucket,
            key_prefix=args.key_prefix,
            region=args.region,
            endpoint_url=args.endpoint_url,
            fan_out=args.fan_out,
            track_latency=not args.no_latency,
            request_timeout=args.request_timeout,
        )

    @staticmethod
    def _create_runner(args) -> BenchmarkRunner:
        persistence = ParquetPersistence(args.output_dir) if args.output_dir else None
        metrics = None
        if args.prometheus_port:
            metrics = SimplePrometheusExporter(args.prometheus_port)
            try:
                metrics.start_server()
            except OSError as e:
                raise ConfigError(f"Cannot serve metrics on port {args.prometheus_port}: {e}") from e
        return BenchmarkRunner(mode=args.mode, persistence=persistence, metrics=metrics)

    def run_create(self, args):
        """Run the create phase."""
        logger.info("=== Create Test Objects ===")
        config = RunConfig(
            workers=1,
            samples=0,
            bucket=args.bucket,
            key_prefix=args.key_prefix,
            region=args.region,
            endpoint_url=args.endpoint_url,
        ).validate()
        uploader = Uploader(config)
        uploaded = uvloop.run(uploader.create_files(args.file_size, args.num_files))
        logger.info(f"Create phase completed: {uploaded} objects")
        return EXIT_OK

    def run_download(self, args):
        """Run a single download benchmark."""
        logger.info("=== Download Benchmark ===")
        config = self._run_config(args, args.workers).validate()
        runner = self._create_runner(args)
        uvloop.run(runner.run_download(config))
        return EXIT_OK

    def run_sweep(self, args):
        """Run a worker-count sweep."""
        logger.info("=== Download Sweep ===")
        sweep_config = SweepConfig(
            start_workers=args.start_num_workers,
            base=self._run_config(args, args.start_num_workers),
            step=args.step,
            max_workers=args.max_workers,
        ).validate()
        runner = self._create_runner(args)
        reports = uvloop.run(runner.run_sweep(sweep_config))
        logger.info(f"Sweep completed: {len(reports)} runs")
        return EXIT_OK

    def run(self, args=None):
        """Run the CLI with the given arguments and return the exit code."""
        if args is None:
            args = sys.argv[1:]

        parsed_args = self.parser.parse_args(args)
        self._configure_logging(parsed_args.log_level)

        if not parsed_args.command:
            self.parser.print_help()
            return EXIT_CONFIG_ERROR

        handlers = {
            "create": self.run_create,
            "download": self.run_download,
            "sweep": self.run_sweep,
        }
        try:
            return handlers[parsed_args.command](parsed_args)
        except ConfigError as e:
            logger.error(f"Invalid configuration: {e}")
            return EXIT_CONFIG_ERROR
        except BenchmarkError as e:
            logger.error(f"Benchmark failed: {e}")
            if e.__cause__ is not None:
                logger.debug("Underlying failure", exc_info=e.__cause__)
            return EXIT_FAILURE
        except KeyboardInterrupt:
            logger.info("Operation interrupted by user")
            return EXIT_INTERRUPTED


def main():
    """Main entry point."""
    cli = S3BenchCLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
