"""
The addressing of the resources in K8s API: namespaces & resource kinds.
"""
import dataclasses
from typing import NewType

# A name of an existing namespace, as opposed to "any namespace" (cluster-wide).
NamespaceName = NewType('NamespaceName', str)

# Where the API calls go. `None` means cluster-wide, e.g. for cluster-scoped resources.
Namespace = NamespaceName | None

# Used when neither the user nor the credentials specify the target namespace.
DEFAULT_NAMESPACE = NamespaceName('default')


@dataclasses.dataclass(frozen=True, eq=False, repr=False)
class Resource:
    """
    A resource kind, enough to build the API URLs and the bodies of its objects.

    * ``group``: the API group, e.g. ``"appstudio.redhat.com"``
      (an empty string for the core resources, such as pods);
    * ``version``: the API version, e.g. ``"v1alpha1"``;
    * ``plural``: the plural name as used in the URLs, e.g. ``"internalrequests"``;
    * ``kind``: the kind as used in the bodies, e.g. ``"InternalRequest"``;
    * ``namespaced``: whether the objects live in namespaces or cluster-wide.

    The API only cares about the group, the version, and the plural name,
    so only these three identify the resource (for equality & hashing).
    """
    group: str
    version: str
    plural: str
    kind: str | None = None
    namespaced: bool = True

    @property
    def _identity(self) -> tuple[str, str, str]:
        return self.group, self.version, self.plural

    def __hash__(self) -> int:
        return hash(self._identity)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Resource):
            return NotImplemented
        return self._identity == other._identity

    def __repr__(self) -> str:
        return '.'.join(part for part in reversed(self._identity) if part)

    @property
    def api_version(self) -> str:
        return f'{self.group}/{self.version}' if self.group else self.version

    def get_url(
            self,
            *,
            namespace: Namespace = None,
            name: str | None = None,
    ) -> str:
        """
        Build a URL of a list of objects (without a name) or of one object.

        The URL is relative to the API server (starts with a slash).
        The namespace is required for individual namespaced objects,
        and is prohibited for the cluster-scoped ones.
        """
        if not self.namespaced and namespace is not None:
            raise ValueError("Specific namespaces are not supported for cluster-scoped resources.")
        if self.namespaced and namespace is None and name is not None:
            raise ValueError("Specific namespaces are required for specific namespaced resources.")

        # The legacy core API is at a different root and has no group.
        segments = ['api'] if self.group == '' and self.version == 'v1' else ['apis', self.group]
        segments.append(self.version)
        if namespace is not None:
            segments.extend(['namespaces', namespace])
        segments.extend([self.plural, name or ''])
        return '/' + '/'.join(segment for segment in segments if segment)


# The resource this client is made for. Others can be used in tests.
INTERNAL_REQUESTS = Resource(
    group='appstudio.redhat.com',
    version='v1alpha1',
    plural='internalrequests',
    kind='InternalRequest',
    namespaced=True,
)
