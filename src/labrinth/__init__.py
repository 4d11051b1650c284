"""
Labrinth - Python client for the Modrinth v2 API
"""

__version__ = '0.1.0'

from .facets import (
    FacetProp,
    FacetsBuilder,
    new_facet_prop,
    project_type,
    versions,
    categories,
    client_side,
    server_side,
    open_source
)
from .client import Client, Response, Rate, ErrorResponse, parse_rate
from .config import Config
from .projects import (
    ProjectsService,
    SearchParams,
    SearchIndex,
    ProjectType,
    ProjectSideSupport,
    ProjectStatus
)

__all__ = [
    'FacetProp',
    'FacetsBuilder',
    'new_facet_prop',
    'project_type',
    'versions',
    'categories',
    'client_side',
    'server_side',
    'open_source',
    'Client',
    'Response',
    'Rate',
    'ErrorResponse',
    'parse_rate',
    'Config',
    'ProjectsService',
    'SearchParams',
    'SearchIndex',
    'ProjectType',
    'ProjectSideSupport',
    'ProjectStatus'
]
