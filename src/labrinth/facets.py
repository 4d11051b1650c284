"""
Search Facets

Builds the filter expression used by the ``facets`` parameter of the
search endpoint.

The expression is a list of groups: groups are combined with AND, and the
clauses inside a group are combined with OR. For example::

    facets = FacetsBuilder()
    facets.add_group(categories().equal('fabric', 'quilt'))
    facets.add_group(versions().equal('1.19.4'))
    str(facets)
    # '[["categories=fabric","categories=quilt"],["versions=1.19.4"]]'

Keys and values are inserted verbatim. Quotes, commas or brackets inside them
are not escaped and will produce an expression the server rejects.
"""

from functools import partial
from typing import Callable, List


class FacetProp:
    """A facet key with the comparison clauses rendered against it."""

    def __init__(self, key: str):
        self.key = key
        self.clauses: List[str] = []  # ['"categories=fabric"', '"categories=quilt"']

    def _add(self, symbol: str, values) -> 'FacetProp':
        for value in values:
            self.clauses.append(f'"{self.key}{symbol}{value}"')
        return self

    def equal(self, *values) -> 'FacetProp':
        return self._add('=', values)

    def not_equal(self, *values) -> 'FacetProp':
        return self._add('!=', values)

    def less(self, *values) -> 'FacetProp':
        return self._add('<', values)

    def less_or_equal(self, *values) -> 'FacetProp':
        return self._add('<=', values)

    def greater(self, *values) -> 'FacetProp':
        return self._add('>', values)

    def greater_or_equal(self, *values) -> 'FacetProp':
        return self._add('>=', values)

    def __str__(self) -> str:
        # "categories=fabric","categories=quilt"
        return ','.join(self.clauses)

    def __repr__(self) -> str:
        return f'FacetProp({self.key!r}, clauses={self.clauses!r})'


def new_facet_prop(key: str) -> Callable[[], FacetProp]:
    """Return a factory creating a fresh, empty FacetProp for ``key``."""
    return partial(FacetProp, key)


project_type = new_facet_prop('project_type')
versions = new_facet_prop('versions')
categories = new_facet_prop('categories')
client_side = new_facet_prop('client_side')
server_side = new_facet_prop('server_side')
open_source = new_facet_prop('open_source')


class FacetsBuilder:
    """
    Accumulates AND-ed groups of OR-ed facet clauses.

    Only conjunctive normal form can be expressed, which is exactly what the
    search endpoint accepts.
    """

    def __init__(self, *props: FacetProp):
        self.groups: List[List[FacetProp]] = []  # [[P, P], [P]]
        if props:
            self.add_group(*props)

    def add_group(self, *props: FacetProp) -> 'FacetsBuilder':
        """
        Append one group whose clauses are OR-ed together.

        Calling this with no props appends an empty group, rendered as ``[]``.
        """
        self.groups.append(list(props))
        return self

    def serialize(self) -> str:
        rendered = []
        for group in self.groups:
            rendered.append('[' + ','.join(str(prop) for prop in group) + ']')
        return '[' + ','.join(rendered) + ']'

    def __str__(self) -> str:
        return self.serialize()

    def __repr__(self) -> str:
        return f'FacetsBuilder({self.serialize()!r})'
