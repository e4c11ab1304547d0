"""Runner module for the content ideas service.

This module wires settings, logging, the LLM client, the session store and
the analyzer together for each CLI command.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any

from src.agent.workflow import STATUS_NOT_FOUND, ContentAnalyzer
from src.config.settings import ConfigurationError, Settings, load_settings
from src.engines.llm_client import OpenAIClient
from src.engines.models import AnalysisRequest
from src.engines.observability import write_run_log
from src.engines.session_store import SessionStoreError, create_session_store


# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_PIPELINE_ERROR = 2


logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application.

    Args:
        verbose: If True, set log level to DEBUG. Otherwise INFO.
    """
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


def _load(env_path: str | None) -> Settings | None:
    """Load and validate settings, logging any problem."""
    try:
        settings = load_settings(env_path=env_path, validate=True)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return None
    logger.debug("Configuration loaded successfully")
    return settings


def build_analyzer(settings: Settings) -> ContentAnalyzer:
    """Create an analyzer with the client and store selected by settings."""
    client = OpenAIClient.from_settings(settings)
    store = create_session_store(settings)
    return ContentAnalyzer(settings, client, store)


def load_requests(
    text_file: str | None = None,
    request_file: str | None = None,
    channels: list[str] | None = None,
) -> list[AnalysisRequest]:
    """Read analysis requests from a plain-text or JSON file.

    A text file becomes one request whose full text is the file content and
    whose title is the file name. A JSON file holds one request object or
    an array of them, using the camelCase request keys.

    Args:
        text_file: Path to a plain-text file
        request_file: Path to a JSON request file
        channels: Channel names overriding those in the file

    Returns:
        The requests to analyze.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the JSON is invalid or has the wrong shape.
    """
    if text_file:
        path = Path(text_file)
        requests = [
            AnalysisRequest(title=path.stem, full_text=path.read_text(encoding="utf-8"))
        ]
    elif request_file:
        data = json.loads(Path(request_file).read_text(encoding="utf-8"))
        items = data if isinstance(data, list) else [data]
        if not all(isinstance(item, dict) for item in items):
            raise ValueError("Request file must contain a JSON object or an array of objects")
        requests = [AnalysisRequest.from_dict(item) for item in items]
    else:
        raise ValueError("Either a text file or a request file is required")

    if channels:
        for request in requests:
            request.channels = list(channels)
    return requests


def _emit(payload: Any, output: str | None = None) -> None:
    """Print a JSON payload and optionally write it to a file."""
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    print(text)
    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        logger.info(f"Response written to {output}")


def run_analyze(
    text_file: str | None = None,
    request_file: str | None = None,
    channels: list[str] | None = None,
    output: str | None = None,
    run_log_dir: str | None = None,
    env_path: str | None = None,
    verbose: bool = False,
) -> int:
    """Analyze the content of a file and print the response.

    Returns:
        Exit code:
        - 0: Every analysis succeeded
        - 1: Configuration or input error
        - 2: At least one analysis failed
    """
    _setup_logging(verbose)

    settings = _load(env_path)
    if settings is None:
        return EXIT_CONFIG_ERROR
    if not settings.openai_api_key:
        logger.error("Configuration error: OPENAI_API_KEY is not set")
        return EXIT_CONFIG_ERROR

    try:
        requests = load_requests(text_file, request_file, channels)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to read analysis request: {e}")
        return EXIT_CONFIG_ERROR

    try:
        analyzer = build_analyzer(settings)
    except SessionStoreError as e:
        logger.error(str(e))
        return EXIT_PIPELINE_ERROR

    try:
        if len(requests) == 1:
            responses = [analyzer.analyze(requests[0])]
        else:
            responses = analyzer.analyze_batch(requests)
    finally:
        analyzer.store.close()

    payload = [r.to_dict() for r in responses]
    _emit(payload[0] if len(payload) == 1 else payload, output)

    if run_log_dir:
        try:
            write_run_log(analyzer.recorded_metrics(), run_log_dir)
        except OSError as e:
            logger.error(f"Failed to write run log: {e}")

    failed = sum(1 for r in responses if not r.success)
    if failed:
        logger.warning(f"{failed} of {len(responses)} analyses failed")
        return EXIT_PIPELINE_ERROR
    return EXIT_SUCCESS


def run_session(
    session_id: str,
    env_path: str | None = None,
    verbose: bool = False,
) -> int:
    """Print the monitoring view of one stored session."""
    _setup_logging(verbose)

    settings = _load(env_path)
    if settings is None:
        return EXIT_CONFIG_ERROR

    try:
        analyzer = build_analyzer(settings)
    except SessionStoreError as e:
        logger.error(str(e))
        return EXIT_PIPELINE_ERROR

    try:
        details = analyzer.session_details(session_id)
    except SessionStoreError as e:
        logger.error(str(e))
        return EXIT_PIPELINE_ERROR
    finally:
        analyzer.store.close()

    _emit(details)
    return EXIT_PIPELINE_ERROR if details["status"] == STATUS_NOT_FOUND else EXIT_SUCCESS


def run_sessions(env_path: str | None = None, verbose: bool = False) -> int:
    """Print a listing of stored sessions and store statistics."""
    _setup_logging(verbose)

    settings = _load(env_path)
    if settings is None:
        return EXIT_CONFIG_ERROR

    try:
        analyzer = build_analyzer(settings)
    except SessionStoreError as e:
        logger.error(str(e))
        return EXIT_PIPELINE_ERROR

    try:
        sessions = analyzer.list_sessions()
        stats = analyzer.stats()
    except SessionStoreError as e:
        logger.error(str(e))
        return EXIT_PIPELINE_ERROR
    finally:
        analyzer.store.close()

    _emit({
        "stats": stats,
        "sessions": [
            {
                "sessionId": s.session_id,
                "title": s.title,
                "url": s.url,
                "createdAt": s.created_at.isoformat(),
                "channelCount": len(s.channels),
                "totalIdeas": s.total_ideas,
            }
            for s in sessions
        ],
    })
    return EXIT_SUCCESS
