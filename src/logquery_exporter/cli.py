"""Command line entry point.

    logquery-exporter serve --config config.yml --bind 0.0.0.0:9104
    logquery-exporter push --config config.yml --gateway http://pushgateway:9091
    logquery-exporter check --config config.yml
"""

import asyncio
import logging
import signal
import socket
from pathlib import Path
from typing import Annotated

import typer
import uvicorn

from logquery_exporter.adapters.aws import AWSConfig, create_logs_client
from logquery_exporter.adapters.frameworks.asgi import create_asgi_app
from logquery_exporter.adapters.logging import configure_logging
from logquery_exporter.adapters.logs.cloudwatch import CloudWatchLogsService
from logquery_exporter.adapters.push import PushGatewaySink, run_push_loop
from logquery_exporter.adapters.storage import (
    RingBufferLogStorage,
    open_checkpoint_store,
)
from logquery_exporter.core.collection import (
    CoalescingCollector,
    CollectionPipeline,
    build_pipeline,
)
from logquery_exporter.core.config import load_config
from logquery_exporter.core.errors import ConfigError
from logquery_exporter.core.mapping import MetricMappingEngine
from logquery_exporter.core.models import ExporterConfig
from logquery_exporter.version import __version__

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="logquery-exporter",
    help="Export log query results as Prometheus metrics.",
    no_args_is_help=True,
)

ConfigOption = Annotated[
    Path,
    typer.Option("--config", "-c", envvar="LOGQUERY_EXPORTER_CONFIG", help="Configuration file."),
]
CheckpointOption = Annotated[
    str,
    typer.Option(
        envvar="LOGQUERY_EXPORTER_CHECKPOINT",
        help="Checkpoint file; a .db/.sqlite path uses SQLite.",
    ),
]
RegionOption = Annotated[str | None, typer.Option(help="AWS region.")]
ProfileOption = Annotated[str | None, typer.Option(help="AWS shared config profile.")]
EndpointOption = Annotated[str | None, typer.Option(help="Custom CloudWatch Logs endpoint.")]
LogLevelOption = Annotated[
    str, typer.Option(envvar="LOGQUERY_EXPORTER_LOG_LEVEL", help="Log level.")
]


def parse_bind(bind: str) -> tuple[str, int]:
    """Split HOST:PORT, defaulting the host to all interfaces."""
    host, sep, port = bind.rpartition(":")
    if not sep or not port.isdigit():
        raise typer.BadParameter(f"expected HOST:PORT, got {bind!r}", param_hint="--bind")
    return host.strip("[]") or "0.0.0.0", int(port)


def _load(config_path: Path) -> ExporterConfig:
    try:
        return load_config(config_path)
    except ConfigError as exc:
        typer.echo(f"Failed to load config: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _pipeline(
    config: ExporterConfig,
    checkpoint: str,
    region: str | None,
    profile: str | None,
    endpoint_url: str | None,
) -> CollectionPipeline:
    aws = AWSConfig.from_env(region=region, profile=profile, endpoint_url=endpoint_url)
    service = CloudWatchLogsService(create_logs_client(aws))
    checkpoints = open_checkpoint_store(checkpoint, key=config.group)
    return build_pipeline(config, service, checkpoints)


@app.command()
def serve(
    config: ConfigOption = Path("config.yml"),
    bind: Annotated[
        str, typer.Option(envvar="LOGQUERY_EXPORTER_BIND", help="HOST:PORT to listen on.")
    ] = "0.0.0.0:9104",
    metrics_path: Annotated[str, typer.Option(help="Metrics endpoint path.")] = "/metrics",
    checkpoint: CheckpointOption = "last_end_time.txt",
    region: RegionOption = None,
    profile: ProfileOption = None,
    endpoint_url: EndpointOption = None,
    log_level: LogLevelOption = "INFO",
) -> None:
    """Serve metrics on demand; every scrape runs one query cycle."""
    log_storage = RingBufferLogStorage(max_size=1000)
    configure_logging(log_level, log_storage)
    exporter_config = _load(config)
    host, port = parse_bind(bind)
    pipeline = _pipeline(exporter_config, checkpoint, region, profile, endpoint_url)
    asgi_app = create_asgi_app(CoalescingCollector(pipeline), log_storage, metrics_path)
    logger.info("HTTP handler path - %s", metrics_path)
    logger.info("Starting http server - %s:%d", host, port)
    uvicorn.run(asgi_app, host=host, port=port, lifespan="off", log_level=log_level.lower())


@app.command()
def push(
    gateway: Annotated[
        str, typer.Option(envvar="LOGQUERY_EXPORTER_GATEWAY", help="Pushgateway URL.")
    ],
    config: ConfigOption = Path("config.yml"),
    job: Annotated[str, typer.Option(help="Job name for the grouping key.")] = "logquery_exporter",
    instance: Annotated[
        str | None, typer.Option(help="Instance grouping label; defaults to the hostname.")
    ] = None,
    interval: Annotated[float, typer.Option(min=1.0, help="Seconds between pushes.")] = 60.0,
    checkpoint: CheckpointOption = "last_end_time.txt",
    region: RegionOption = None,
    profile: ProfileOption = None,
    endpoint_url: EndpointOption = None,
    log_level: LogLevelOption = "INFO",
) -> None:
    """Run a query cycle on a timer and push results to a Pushgateway."""
    configure_logging(log_level)
    exporter_config = _load(config)
    pipeline = _pipeline(exporter_config, checkpoint, region, profile, endpoint_url)
    sink = PushGatewaySink(
        gateway,
        job=job,
        instance=instance or socket.gethostname(),
        namespace=exporter_config.namespace,
    )

    async def main() -> None:
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, stop.set)
        logger.info("Pushing to %s every %.0fs as job %s", gateway, interval, job)
        await run_push_loop(pipeline, sink, interval=interval, stop=stop)

    asyncio.run(main())


@app.command()
def check(config: ConfigOption = Path("config.yml")) -> None:
    """Validate a configuration file and list the metrics it defines."""
    exporter_config = _load(config)
    engine = MetricMappingEngine(exporter_config)
    typer.echo(f"group: {exporter_config.group}")
    for descriptor in engine.describe():
        labels = ",".join(descriptor.label_names)
        metric_type = exporter_config.metrics[descriptor.name].type
        typer.echo(f"{descriptor.fq_name} ({metric_type}) [{labels}]")


@app.command()
def version() -> None:
    """Print the exporter version."""
    typer.echo(__version__)
