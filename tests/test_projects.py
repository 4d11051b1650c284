"""
Tests for the projects service.
"""

import json
from datetime import datetime, timezone
from urllib.parse import parse_qs, urlparse

import pytest
import responses

from labrinth.client import ErrorResponse
from labrinth.facets import FacetsBuilder, categories, project_type, versions
from labrinth.projects import (
    ProjectStatus,
    SearchIndex,
    SearchParams,
    SUPPORTED_IMAGE_EXTENSIONS
)

from conftest import API_URL


def sent_query(call) -> dict:
    """Decode the query string of a recorded call into single values."""
    return {key: values[0] for key, values in parse_qs(urlparse(call.request.url).query).items()}


class TestSearchParams:
    """Test cases for SearchParams."""

    def test_empty_params(self):
        """Test that defaults send nothing."""
        assert SearchParams().to_params() == {}

    def test_all_params(self):
        """Test rendering every parameter, including a facets builder."""
        facets = FacetsBuilder(categories().equal('fabric'))
        params = SearchParams(
            query='sodium',
            facets=facets,
            index=SearchIndex.DOWNLOADS,
            offset=20,
            limit=10
        )

        assert params.to_params() == {
            'query': 'sodium',
            'facets': '[["categories=fabric"]]',
            'index': 'downloads',
            'offset': '20',
            'limit': '10'
        }

    def test_facets_as_string(self):
        """Test that a prebuilt facet string is sent unchanged."""
        params = SearchParams(facets='[["versions=1.17.1"]]')
        assert params.to_params() == {'facets': '[["versions=1.17.1"]]'}


class TestProjectStatus:
    """Test cases for ProjectStatus."""

    @pytest.mark.parametrize('status', ['approved', 'archived', 'draft', 'unlisted', 'private'])
    def test_requestable(self, status):
        assert ProjectStatus.is_requestable(status)

    @pytest.mark.parametrize('status', ['rejected', 'processing', 'withheld', 'scheduled', 'unknown'])
    def test_not_requestable(self, status):
        assert not ProjectStatus.is_requestable(status)


class TestSearch:
    """Test cases for search and pagination."""

    @responses.activate
    def test_search_sends_facets(self, client, sample_hit):
        """Test that the facets expression is sent as one query parameter."""
        responses.add(
            responses.GET, API_URL + 'search',
            json={'hits': [sample_hit], 'offset': 0, 'limit': 10, 'total_hits': 1},
            status=200
        )

        facets = FacetsBuilder()
        facets.add_group(project_type().equal('mod'))
        facets.add_group(categories().equal('fabric'), categories().equal('quilt'))
        facets.add_group(versions().equal('1.19.4'))

        result = client.projects.search(SearchParams(query='sodium', facets=facets))

        assert result['hits'][0]['slug'] == 'sodium'
        query = sent_query(responses.calls[0])
        assert query['query'] == 'sodium'
        assert query['facets'] == (
            '[["project_type=mod"],["categories=fabric","categories=quilt"],["versions=1.19.4"]]'
        )

    @responses.activate
    def test_search_without_params(self, client):
        """Test searching with no parameters sends no query string."""
        responses.add(responses.GET, API_URL + 'search', json={'hits': [], 'total_hits': 0})

        client.projects.search()

        assert urlparse(responses.calls[0].request.url).query == ''

    @responses.activate
    def test_iter_search_pages(self, client):
        """Test that iter_search follows offsets until total_hits is reached."""
        responses.add(responses.GET, API_URL + 'search', json={
            'hits': [{'slug': 'a'}, {'slug': 'b'}], 'offset': 0, 'limit': 2, 'total_hits': 3
        })
        responses.add(responses.GET, API_URL + 'search', json={
            'hits': [{'slug': 'c'}], 'offset': 2, 'limit': 2, 'total_hits': 3
        })

        params = SearchParams(query='x')
        slugs = [hit['slug'] for hit in client.projects.iter_search(params, page_size=2)]

        assert slugs == ['a', 'b', 'c']
        assert len(responses.calls) == 2
        assert 'offset' not in sent_query(responses.calls[0])
        assert sent_query(responses.calls[0])['limit'] == '2'
        assert sent_query(responses.calls[1])['offset'] == '2'
        # Caller's params are left untouched
        assert params.offset == 0
        assert params.limit == 0

    @responses.activate
    def test_iter_search_stops_on_empty_page(self, client):
        """Test that an empty page ends iteration."""
        responses.add(responses.GET, API_URL + 'search', json={'hits': [], 'total_hits': 10})

        assert list(client.projects.iter_search()) == []
        assert len(responses.calls) == 1

    @responses.activate
    def test_iter_search_caps_page_size(self, client):
        """Test that the page size is capped at the API maximum."""
        responses.add(responses.GET, API_URL + 'search', json={'hits': [], 'total_hits': 0})

        list(client.projects.iter_search(page_size=500))

        assert sent_query(responses.calls[0])['limit'] == '100'


class TestProjectLookup:
    """Test cases for fetching projects."""

    @responses.activate
    def test_get(self, client, sample_project):
        responses.add(responses.GET, API_URL + 'project/sodium', json=sample_project)

        project = client.projects.get('sodium')

        assert project['id'] == 'AANobbMI'

    @responses.activate
    def test_get_not_found(self, client):
        responses.add(
            responses.GET, API_URL + 'project/nope',
            json={'error': 'not_found', 'description': 'not found'}, status=404
        )

        with pytest.raises(ErrorResponse) as exc_info:
            client.projects.get('nope')

        assert exc_info.value.code == 'not_found'

    @responses.activate
    def test_get_all(self, client, sample_project):
        """Test that ids are sent as a JSON-style array."""
        responses.add(responses.GET, API_URL + 'projects', json=[sample_project])

        projects = client.projects.get_all(['sodium', 'lithium'])

        assert len(projects) == 1
        assert sent_query(responses.calls[0])['ids'] == '["sodium","lithium"]'

    @pytest.mark.parametrize('requested, sent', [(5, '5'), (-3, '0'), (250, '100')])
    @responses.activate
    def test_get_random_clamps_count(self, client, requested, sent):
        responses.add(responses.GET, API_URL + 'projects_random', json=[])

        client.projects.get_random(requested)

        assert sent_query(responses.calls[0])['count'] == sent

    @responses.activate
    def test_check(self, client):
        responses.add(responses.GET, API_URL + 'project/sodium/check', json={'id': 'AANobbMI'})

        assert client.projects.check('sodium') == {'id': 'AANobbMI'}

    @responses.activate
    def test_get_dependencies(self, client):
        responses.add(
            responses.GET, API_URL + 'project/sodium/dependencies',
            json={'projects': [], 'versions': []}
        )

        assert client.projects.get_dependencies('sodium') == {'projects': [], 'versions': []}


class TestProjectEditing:
    """Test cases for creating and editing projects."""

    @responses.activate
    def test_create_sends_data_part(self, client, sample_project):
        """Test that create sends the creatable fields as a JSON multipart part."""
        responses.add(responses.POST, API_URL + 'project', json=sample_project)

        result = client.projects.create(sample_project)

        assert result['slug'] == 'sodium'
        request = responses.calls[0].request
        assert request.headers['Content-Type'].startswith('multipart/form-data')
        assert b'name="data"' in request.body

        payload_start = request.body.index(b'{')
        payload_end = request.body.rindex(b'}') + 1
        payload = json.loads(request.body[payload_start:payload_end])

        assert payload['slug'] == 'sodium'
        assert payload['license_id'] == 'LGPL-3.0-only'
        assert payload['issues_url'] == 'https://github.com/CaffeineMC/sodium/issues'
        # Read-only and empty optional fields are not sent
        assert 'id' not in payload
        assert 'downloads' not in payload
        assert 'source_url' not in payload
        assert 'license_url' not in payload
        assert 'additional_categories' not in payload

    @responses.activate
    def test_edit_drops_empty_fields(self, client):
        responses.add(responses.PATCH, API_URL + 'project/sodium', status=204)

        response = client.projects.edit('sodium', {
            'title': 'Sodium Renewed',
            'description': '',
            'wiki_url': None,
            'downloads': 5
        })

        assert response.status_code == 204
        assert json.loads(responses.calls[0].request.body) == {'title': 'Sodium Renewed'}

    @responses.activate
    def test_edit_all(self, client):
        responses.add(responses.PATCH, API_URL + 'projects', status=204)

        client.projects.edit_all(['a', 'b'], {'add_categories': ['fabric'], 'title': 'ignored'})

        call = responses.calls[0]
        assert sent_query(call)['ids'] == '["a","b"]'
        assert json.loads(call.request.body) == {'add_categories': ['fabric']}

    @responses.activate
    def test_delete(self, client):
        responses.add(responses.DELETE, API_URL + 'project/sodium', status=204)

        assert client.projects.delete('sodium').status_code == 204

    @responses.activate
    def test_follow_and_unfollow(self, client):
        responses.add(responses.POST, API_URL + 'project/sodium/follow', status=204)
        responses.add(responses.DELETE, API_URL + 'project/sodium/follow', status=204)

        client.projects.follow('sodium')
        client.projects.unfollow('sodium')

        assert [call.request.method for call in responses.calls] == ['POST', 'DELETE']

    @responses.activate
    def test_schedule(self, client):
        responses.add(responses.POST, API_URL + 'project/sodium/schedule', status=204)
        when = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

        client.projects.schedule('sodium', when, ProjectStatus.APPROVED)

        assert json.loads(responses.calls[0].request.body) == {
            'time': '2024-01-02T03:04:05+00:00',
            'requested_status': 'approved'
        }

    def test_schedule_rejects_status(self, client):
        """Test that non-requestable statuses fail before any request."""
        with pytest.raises(ValueError, match='not requestable'):
            client.projects.schedule('sodium', '2024-01-01T00:00:00Z', ProjectStatus.REJECTED)


class TestProjectImages:
    """Test cases for icons and gallery images."""

    @responses.activate
    def test_change_icon_normalizes_jpg(self, client):
        responses.add(responses.PATCH, API_URL + 'project/sodium/icon', status=204)

        client.projects.change_icon('sodium', 'jpg', b'image-bytes')

        request = responses.calls[0].request
        assert request.headers['Content-Type'] == 'image/jpeg'
        assert sent_query(responses.calls[0]) == {'ext': 'jpeg'}
        assert request.body == b'image-bytes'

    def test_change_icon_unsupported(self, client):
        with pytest.raises(ValueError, match='Unsupported image'):
            client.projects.change_icon('sodium', 'tiff', b'')

    def test_supported_extensions(self):
        assert 'webp' in SUPPORTED_IMAGE_EXTENSIONS
        assert 'tiff' not in SUPPORTED_IMAGE_EXTENSIONS

    @responses.activate
    def test_delete_icon(self, client):
        responses.add(responses.DELETE, API_URL + 'project/sodium/icon', status=204)

        assert client.projects.delete_icon('sodium').status_code == 204

    @responses.activate
    def test_add_gallery_image(self, client):
        responses.add(responses.POST, API_URL + 'project/sodium/gallery', status=204)

        client.projects.add_gallery_image('sodium', 'png', b'png-bytes', featured=True,
                                          title='Screenshot', ordering=0)

        assert sent_query(responses.calls[0]) == {
            'ext': 'png',
            'featured': 'true',
            'title': 'Screenshot',
            'ordering': '0'
        }
        assert responses.calls[0].request.headers['Content-Type'] == 'image/png'

    @responses.activate
    def test_edit_gallery_image(self, client):
        responses.add(responses.PATCH, API_URL + 'project/sodium/gallery', status=204)

        client.projects.edit_gallery_image('sodium', 'https://cdn.example.com/a.png',
                                           featured=False, description='Updated')

        assert sent_query(responses.calls[0]) == {
            'url': 'https://cdn.example.com/a.png',
            'featured': 'false',
            'description': 'Updated'
        }

    @responses.activate
    def test_delete_gallery_image(self, client):
        responses.add(responses.DELETE, API_URL + 'project/sodium/gallery', status=204)

        client.projects.delete_gallery_image('sodium', 'https://cdn.example.com/a.png')

        assert sent_query(responses.calls[0]) == {'url': 'https://cdn.example.com/a.png'}
