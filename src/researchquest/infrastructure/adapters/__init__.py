"""Adapter registries for the directory searches."""

from __future__ import annotations

from typing import Dict

from researchquest.application.ports.platform_search_port import PlatformSearchPort
from researchquest.application.ports.resource_search_port import ResourceSearchPort
from researchquest.infrastructure.adapters.arxiv_resource_adapter import ArxivResourceAdapter
from researchquest.infrastructure.adapters.core_adapter import CoreAdapter
from researchquest.infrastructure.adapters.discord_adapter import DiscordCommunityAdapter
from researchquest.infrastructure.adapters.doaj_adapter import DOAJAdapter
from researchquest.infrastructure.adapters.europepmc_adapter import EuropePMCAdapter
from researchquest.infrastructure.adapters.reddit_adapter import RedditCommunityAdapter
from researchquest.infrastructure.adapters.slack_adapter import SlackCommunityAdapter


def build_platform_registry() -> Dict[str, PlatformSearchPort]:
    return {
        "discord": DiscordCommunityAdapter(),
        "slack": SlackCommunityAdapter(),
        "reddit": RedditCommunityAdapter(),
    }


def build_resource_registry() -> Dict[str, ResourceSearchPort]:
    return {
        "core": CoreAdapter(),
        "doaj": DOAJAdapter(),
        "arxiv": ArxivResourceAdapter(),
        "europepmc": EuropePMCAdapter(),
    }
