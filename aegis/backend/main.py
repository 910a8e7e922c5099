from __future__ import annotations

import argparse
import asyncio
import logging
import random
import signal
import sys
from typing import NoReturn

import uvicorn

from .api.main import broadcast_update, create_app, set_orchestrator
from .api.ws_manager import ws_manager
from .config import Settings, settings
from .enrichment import EnrichmentGateway, NullGateway, OllamaGateway
from .metrics import METRICS
from .models import Packet
from .stream import PacketSynthesizer, ScanOrchestrator, StreamBuffer, run_periodic

logger = logging.getLogger("aegis.main")

_ANSI = {
    "HIGH":   "\033[91m",
    "MEDIUM": "\033[93m",
    "LOW":    "\033[97m",
    "RESET":  "\033[0m",
}


def _severity(risk_score: int) -> str:
    if risk_score > 70:
        return "HIGH"
    if risk_score > 40:
        return "MEDIUM"
    return "LOW"


def _colour(severity: str, text: str) -> str:
    return f"{_ANSI.get(severity, '')}{text}{_ANSI['RESET']}"


def _print_threat(packet: Packet) -> None:
    sev = _severity(packet.risk_score)
    header = _colour(sev, f"[THREAT ★ {packet.label.value.upper()}]")
    analysis = f"\n  {_colour(sev, '🤖 ' + packet.analysis[:100])}" if packet.analysis else ""
    print(
        f"\n{header} risk={packet.risk_score} "
        f"{packet.protocol_type.value.upper()}/{packet.service.value} flag={packet.flag.value} "
        f"src_bytes={packet.src_bytes} dst_bytes={packet.dst_bytes}"
        f"{analysis}\n"
        f"  id={packet.id} at {packet.timestamp}\n",
        flush=True,
    )


async def console_listener(
    channel: str,
    orchestrator: ScanOrchestrator,
    batch_ids: tuple[str, ...],
) -> None:
    """Echo the threats of the cycle that just finished."""
    if channel != "stats":
        return
    for packet_id in batch_ids:
        packet = orchestrator.buffer.get(packet_id)
        # None once a later cycle has evicted it
        if packet is not None and packet.is_threat:
            _print_threat(packet)


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------

def build_gateway(cfg: Settings) -> EnrichmentGateway:
    if not cfg.ENRICHMENT_ENABLED:
        return NullGateway()
    return OllamaGateway(
        base_url=cfg.OLLAMA_URL,
        model=cfg.OLLAMA_MODEL,
        timeout=cfg.ENRICHMENT_TIMEOUT_SECONDS,
        max_calls_per_minute=cfg.ENRICHMENT_MAX_CALLS_PER_MINUTE,
    )


def build_orchestrator(
    cfg: Settings,
    gateway: EnrichmentGateway | None = None,
) -> ScanOrchestrator:
    rng = random.Random(cfg.RANDOM_SEED) if cfg.RANDOM_SEED is not None else random.Random()
    return ScanOrchestrator(
        synthesizer=PacketSynthesizer(rng=rng, attack_probability=cfg.ATTACK_PROBABILITY),
        buffer=StreamBuffer(capacity=cfg.BUFFER_CAPACITY),
        gateway=gateway if gateway is not None else build_gateway(cfg),
        batch_size=cfg.BATCH_SIZE,
        enrichment_timeout=cfg.ENRICHMENT_TIMEOUT_SECONDS,
        listeners=(broadcast_update,),
    )


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

async def run(cfg: Settings, auto_scan_interval: float, quiet: bool = False) -> None:
    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _signal_handler(_signum, _frame) -> None:
        logger.info("Shutdown signal received")
        loop.call_soon_threadsafe(shutdown_event.set)

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    orchestrator = build_orchestrator(cfg)
    if not quiet:
        orchestrator.add_listener(console_listener)
    set_orchestrator(orchestrator)

    app = create_app(cors_origins=cfg.CORS_ORIGINS)
    uv_config = uvicorn.Config(
        app,
        host=cfg.API_HOST,
        port=cfg.API_PORT,
        log_level="warning",
        loop="none",
    )
    uv_server = uvicorn.Server(uv_config)

    # Check the classifier at startup (non-blocking, just logs)
    asyncio.create_task(orchestrator.gateway.health_check())

    tasks = []
    if auto_scan_interval > 0:
        tasks.append(asyncio.create_task(
            run_periodic(orchestrator, auto_scan_interval, shutdown_event), name="auto_scan",
        ))
    tasks.append(asyncio.create_task(uv_server.serve(), name="api"))

    logger.info(
        "AEGIS — API=http://%s:%d batch=%d capacity=%d gateway=%r auto_scan=%s",
        cfg.API_HOST, cfg.API_PORT, cfg.BATCH_SIZE, cfg.BUFFER_CAPACITY,
        orchestrator.gateway,
        f"{auto_scan_interval:.1f}s" if auto_scan_interval > 0 else "off",
    )

    await shutdown_event.wait()

    uv_server.should_exit = True
    for t in tasks[:-1]:
        t.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
    logger.info(
        "Final stats — %s counters=%s metrics=%s ws=%s",
        orchestrator.stats, orchestrator.counters, METRICS.as_dict(), ws_manager.all_counts(),
    )
    logger.info("AEGIS stopped cleanly")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="AEGIS packet stream console")
    parser.add_argument(
        "--auto-scan", type=float, default=settings.AUTO_SCAN_INTERVAL_SECONDS,
        metavar="SECONDS", help="scan every N seconds (0 = API-triggered only)",
    )
    parser.add_argument("--seed", type=int, default=settings.RANDOM_SEED)
    parser.add_argument("--no-enrichment", action="store_true")
    parser.add_argument("--quiet", action="store_true", help="do not echo threats to stdout")
    parser.add_argument(
        "--log-level", default=settings.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser.parse_args()


def main() -> NoReturn:
    args = _parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    if args.auto_scan < 0:
        print("ERROR: --auto-scan must be >= 0", file=sys.stderr)
        sys.exit(1)

    overrides: dict = {"RANDOM_SEED": args.seed}
    if args.no_enrichment:
        overrides["ENRICHMENT_ENABLED"] = False
    cfg = settings.model_copy(update=overrides)

    asyncio.run(run(cfg, auto_scan_interval=args.auto_scan, quiet=args.quiet))
    sys.exit(0)


if __name__ == "__main__":
    main()
