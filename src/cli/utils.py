"""Shared CLI utilities."""

import sys

import structlog
from rich.console import Console

console = Console()
logger = structlog.get_logger()


def get_components(with_embeddings: bool = True):
    """Build store, embedder, pipeline and search from config.

    Args:
        with_embeddings: If False, skip the embedding provider (listing, stats).
    """
    from cli.config import get_paths, load_config
    from memory.dedup import DuplicateChecker
    from memory.embeddings import create_embedding_provider
    from memory.pipeline import ExtractionPipeline
    from memory.search import MemorySearch
    from memory.store import MemoryStore

    try:
        config = load_config()
    except ValueError as e:
        console.print(f"[red]Config error:[/] {e}")
        sys.exit(1)

    paths = get_paths(config)
    mem_cfg = config["memory"]

    store = MemoryStore(paths["db_path"])

    embedder = None
    if with_embeddings:
        try:
            embedder = create_embedding_provider(config["embeddings"])
        except Exception as e:
            logger.warning("embedding_provider_unavailable", error=str(e))

    checker = DuplicateChecker(
        store,
        embedder,
        window_size=mem_cfg["window_size"],
        lexical_threshold=mem_cfg["lexical_threshold"],
        semantic_threshold=mem_cfg["semantic_threshold"],
    )

    return {
        "config": config,
        "paths": paths,
        "store": store,
        "embedder": embedder,
        "pipeline": ExtractionPipeline(store, embedder, checker=checker),
        "search": MemorySearch(
            store,
            embedder,
            scan_limit=mem_cfg["scan_limit"],
            min_similarity=mem_cfg["min_similarity"],
        ),
    }
