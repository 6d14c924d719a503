"""Application ports (interfaces) used by the application layer."""

from .entity_store_port import EntityStorePort, EntityWriter, Predicate, Record
from .platform_search_port import PlatformSearchPort
from .resource_search_port import ResourceSearchPort
from .topic_recommender_port import TopicRecommenderPort

__all__ = [
    "EntityStorePort",
    "EntityWriter",
    "Predicate",
    "Record",
    "PlatformSearchPort",
    "ResourceSearchPort",
    "TopicRecommenderPort",
]
