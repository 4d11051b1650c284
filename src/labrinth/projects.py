"""
Projects Service

Wraps the ``/project`` family of endpoints: search, lookup, creation, editing,
icons, gallery images, dependencies, follows and scheduling.

Methods that fetch something return the decoded JSON body; methods that only
act return the client Response.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, BinaryIO, Dict, Generator, Iterable, List, Optional, Union

from .facets import FacetsBuilder
from .utils import query_array, drop_empty


class SearchIndex:
    """Sorting methods accepted by the search endpoint."""
    RELEVANCE = 'relevance'
    DOWNLOADS = 'downloads'
    FOLLOWS = 'follows'
    NEWEST = 'newest'
    UPDATED = 'updated'


class ProjectType:
    MOD = 'mod'
    MODPACK = 'modpack'
    RESOURCEPACK = 'resourcepack'
    SHADER = 'shader'


class ProjectSideSupport:
    REQUIRED = 'required'
    OPTIONAL = 'optional'
    UNSUPPORTED = 'unsupported'
    UNKNOWN = 'unknown'


class ProjectStatus:
    APPROVED = 'approved'
    ARCHIVED = 'archived'
    REJECTED = 'rejected'
    DRAFT = 'draft'
    UNLISTED = 'unlisted'
    PROCESSING = 'processing'
    WITHHELD = 'withheld'
    SCHEDULED = 'scheduled'
    PRIVATE = 'private'
    UNKNOWN = 'unknown'

    REQUESTABLE = (APPROVED, ARCHIVED, DRAFT, UNLISTED, PRIVATE)

    @classmethod
    def is_requestable(cls, status: str) -> bool:
        return status in cls.REQUESTABLE


SUPPORTED_IMAGE_EXTENSIONS = ('png', 'jpg', 'jpeg', 'bmp', 'gif', 'webp', 'svg', 'svgz', 'rgb')

MAX_SEARCH_LIMIT = 100
MAX_RANDOM_COUNT = 100

CREATE_REQUIRED_FIELDS = (
    'slug', 'title', 'description', 'project_type', 'categories',
    'client_side', 'server_side', 'body', 'license_id'
)
CREATE_OPTIONAL_FIELDS = (
    'requested_status', 'additional_categories', 'issues_url', 'source_url',
    'wiki_url', 'discord_url', 'donation_urls', 'license_url'
)
EDIT_FIELDS = (
    'slug', 'title', 'description', 'categories', 'client_side', 'server_side',
    'body', 'requested_status', 'additional_categories', 'issues_url',
    'source_url', 'wiki_url', 'discord_url', 'donation_urls', 'license_id',
    'license_url'
)
EDIT_ALL_FIELDS = (
    'categories', 'add_categories', 'remove_categories',
    'additional_categories', 'add_additional_categories', 'remove_additional_categories',
    'donation_urls', 'add_donation_urls', 'remove_donation_urls',
    'issues_url', 'source_url', 'wiki_url', 'discord_url'
)


@dataclass
class SearchParams:
    """Query parameters for the search endpoint; empty values are not sent."""
    # The keyword to search for
    query: str = ''
    # Filter expression, e.g. [["categories=forge"],["versions=1.17.1"]]
    facets: Union[str, FacetsBuilder, None] = None
    # One of SearchIndex, server default is relevance
    index: str = ''
    # Number of results to skip
    offset: int = 0
    # Number of results to return, server default is 10
    limit: int = 0

    def to_params(self) -> Dict[str, str]:
        params = {
            'query': self.query,
            'facets': str(self.facets) if self.facets is not None else '',
            'index': self.index,
            'offset': str(self.offset) if self.offset else '',
            'limit': str(self.limit) if self.limit else ''
        }
        return drop_empty(params)


def _flatten_license(project: Dict) -> Dict:
    """Accept the nested ``license`` object of a fetched project as license_id/license_url."""
    fields = dict(project)
    license_info = fields.pop('license', None)
    if isinstance(license_info, dict):
        fields.setdefault('license_id', license_info.get('id'))
        fields.setdefault('license_url', license_info.get('url'))
    return fields


def _pick(fields: Dict, allowed: Iterable[str], logger: logging.Logger) -> Dict:
    ignored = sorted(set(fields) - set(allowed))
    if ignored:
        logger.debug(f"Ignoring fields not accepted by this endpoint: {ignored}")
    return {key: fields[key] for key in allowed if key in fields}


def _image_extension(ext: str) -> str:
    ext = ext.lower().lstrip('.')
    if ext not in SUPPORTED_IMAGE_EXTENSIONS:
        raise ValueError(f"Unsupported image file extension: {ext}")
    return 'jpeg' if ext == 'jpg' else ext


def _bool_param(value: bool) -> str:
    return 'true' if value else 'false'


class ProjectsService:
    """Endpoints under /project, /projects and /search."""

    def __init__(self, client):
        self.client = client
        self.logger = logging.getLogger(__name__)

    def search(self, params: Optional[SearchParams] = None) -> Dict:
        """
        Search projects.

        Returns the decoded body: ``hits``, ``offset``, ``limit`` and ``total_hits``.
        """
        query = params.to_params() if params else {}
        req = self.client.new_request('GET', 'search', params=query)
        return self.client.do(req).data

    def iter_search(self, params: Optional[SearchParams] = None,
                    page_size: int = MAX_SEARCH_LIMIT) -> Generator[Dict, None, None]:
        """Generator over every search hit, fetching pages of ``page_size``."""
        page = replace(params) if params else SearchParams()
        page.limit = max(1, min(page_size, MAX_SEARCH_LIMIT))

        while True:
            result = self.search(page)
            hits = result.get('hits', [])

            if not hits:
                break

            for hit in hits:
                yield hit

            page.offset += len(hits)
            self.logger.debug(f"Fetched {page.offset}/{result.get('total_hits', 0)} search hits")

            if page.offset >= result.get('total_hits', 0):
                break

    def get(self, id_slug: str) -> Dict:
        req = self.client.new_request('GET', f'project/{id_slug}')
        return self.client.do(req).data

    def get_all(self, id_slugs: List[str]) -> List[Dict]:
        req = self.client.new_request('GET', 'projects', params={'ids': query_array(id_slugs)})
        return self.client.do(req).data

    def get_random(self, count: int) -> List[Dict]:
        """Fetch ``count`` random projects; count is clamped to 0..100."""
        count = max(0, min(count, MAX_RANDOM_COUNT))
        req = self.client.new_request('GET', 'projects_random', params={'count': str(count)})
        return self.client.do(req).data

    def check(self, id_slug: str) -> Dict:
        """Check that a slug or ID exists; returns ``{"id": ...}``."""
        req = self.client.new_request('GET', f'project/{id_slug}/check')
        return self.client.do(req).data

    def create(self, project: Dict) -> Dict:
        """
        Create a project.

        ``project`` uses the API field names. A nested ``license`` object, as
        returned by get(), is accepted in place of license_id/license_url.
        """
        fields = _pick(
            _flatten_license(project), CREATE_REQUIRED_FIELDS + CREATE_OPTIONAL_FIELDS, self.logger
        )
        payload = {key: fields.get(key) for key in CREATE_REQUIRED_FIELDS}
        payload.update(drop_empty({
            key: fields[key] for key in CREATE_OPTIONAL_FIELDS if key in fields
        }))

        files = {'data': (None, self.client.json_dumps(payload), 'application/json')}
        req = self.client.new_form_request('POST', 'project', files=files)
        return self.client.do(req).data

    def edit(self, id_slug: str, fields: Dict):
        """Edit a project; empty values are not sent."""
        fields = _flatten_license(fields)
        body = drop_empty(_pick(fields, EDIT_FIELDS, self.logger))
        req = self.client.new_request('PATCH', f'project/{id_slug}', body=body)
        return self.client.do(req)

    def edit_all(self, id_slugs: List[str], fields: Dict):
        """Apply the same edit to several projects at once."""
        body = drop_empty(_pick(fields, EDIT_ALL_FIELDS, self.logger))
        req = self.client.new_request(
            'PATCH', 'projects', body=body, params={'ids': query_array(id_slugs)}
        )
        return self.client.do(req)

    def delete(self, id_slug: str):
        req = self.client.new_request('DELETE', f'project/{id_slug}')
        return self.client.do(req)

    def change_icon(self, id_slug: str, ext: str, file: Union[bytes, BinaryIO]):
        ext = _image_extension(ext)
        req = self.client.new_upload_request(
            'PATCH', f'project/{id_slug}/icon', f'image/{ext}', file,
            params={'ext': ext}
        )
        return self.client.do(req)

    def delete_icon(self, id_slug: str):
        req = self.client.new_request('DELETE', f'project/{id_slug}/icon')
        return self.client.do(req)

    def add_gallery_image(self, id_slug: str, ext: str, file: Union[bytes, BinaryIO],
                          featured: bool = False, title: Optional[str] = None,
                          description: Optional[str] = None, ordering: Optional[int] = None):
        ext = _image_extension(ext)
        params = drop_empty({
            'ext': ext,
            'featured': _bool_param(featured),
            'title': title,
            'description': description,
            'ordering': str(ordering) if ordering is not None else None
        })
        req = self.client.new_upload_request(
            'POST', f'project/{id_slug}/gallery', f'image/{ext}', file, params=params
        )
        return self.client.do(req)

    def edit_gallery_image(self, id_slug: str, url: str, featured: Optional[bool] = None,
                           title: Optional[str] = None, description: Optional[str] = None,
                           ordering: Optional[int] = None):
        params = drop_empty({
            'url': url,
            'featured': _bool_param(featured) if featured is not None else None,
            'title': title,
            'description': description,
            'ordering': str(ordering) if ordering is not None else None
        })
        req = self.client.new_request('PATCH', f'project/{id_slug}/gallery', params=params)
        return self.client.do(req)

    def delete_gallery_image(self, id_slug: str, url: str):
        req = self.client.new_request('DELETE', f'project/{id_slug}/gallery', params={'url': url})
        return self.client.do(req)

    def get_dependencies(self, id_slug: str) -> Dict:
        """Returns ``{"projects": [...], "versions": [...]}``."""
        req = self.client.new_request('GET', f'project/{id_slug}/dependencies')
        return self.client.do(req).data

    def follow(self, id_slug: str):
        req = self.client.new_request('POST', f'project/{id_slug}/follow')
        return self.client.do(req)

    def unfollow(self, id_slug: str):
        req = self.client.new_request('DELETE', f'project/{id_slug}/follow')
        return self.client.do(req)

    def schedule(self, id_slug: str, time: Union[datetime, str], requested_status: str):
        """Schedule a status change; only requestable statuses are accepted."""
        if not ProjectStatus.is_requestable(requested_status):
            raise ValueError(f"Project status is not requestable: {requested_status}")

        body = {
            'time': time.isoformat() if isinstance(time, datetime) else time,
            'requested_status': requested_status
        }
        req = self.client.new_request('POST', f'project/{id_slug}/schedule', body=body)
        return self.client.do(req)
