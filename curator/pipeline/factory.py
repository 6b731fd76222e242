"""Wires production collaborators into a pipeline."""

import structlog

from curator.collaborators.clustering import LlmClusterer
from curator.collaborators.search import BraveSearchClient
from curator.collaborators.summarizer import LlmSummarizer
from curator.collaborators.topics import LlmTopicExtractor
from curator.config.errors import ConfigurationError
from curator.config.schemas import CuratorConfig
from curator.llm.factory import create_llm_client
from curator.pipeline.orchestrator import CurationPipeline, PipelineCollaborators
from curator.settings.app import AppSettings
from curator.store.store import DiscoveryStore


logger = structlog.get_logger()


def create_collaborators(
    settings: AppSettings, config: CuratorConfig
) -> PipelineCollaborators:
    """Build the Brave search client and the Gemini-backed stages.

    Raises:
        ConfigurationError: If a required credential is missing.
    """
    missing = settings.missing_credentials()
    if missing:
        msg = f"Missing required environment variables: {', '.join(missing)}"
        raise ConfigurationError(msg)

    llm = create_llm_client(settings.gemini_api_key, config.llm)
    return PipelineCollaborators(
        search=BraveSearchClient(settings.brave_search_api_key or "", config.search),
        clusterer=LlmClusterer(llm),
        topic_extractor=LlmTopicExtractor(llm),
        summarizer=LlmSummarizer(llm, max_main_stories=config.llm.max_main_stories),
    )


def create_pipeline(
    store: DiscoveryStore,
    collaborators: PipelineCollaborators,
    config: CuratorConfig,
) -> CurationPipeline:
    """Create a pipeline over a connected store and prebuilt collaborators."""
    logger.info("pipeline_created", component="pipeline", db_path=str(store.db_path))
    return CurationPipeline(store, collaborators, config)
