"""Well-known keys and identifiers."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

#: Key holding the :class:`~pystatedb.models.VersionRecord`.
VERSION_KEY = "statedb:version"

#: Key holding the persisted shell layout snapshot.
LAYOUT_KEY = "layout-restorer:data"

#: Separator between namespace and caller key on the medium.
NAMESPACE_SEPARATOR = ":"

CLEAR_STATE_COMMAND_ID = "apputils:clear-statedb"
CLEAR_STATE_COMMAND_LABEL = "Clear Application Restore State"

#: Path prefix of the REST state endpoint served to :class:`HttpMedium`.
HTTP_STATE_ENDPOINT = "/api/statedb"


def package_version() -> str:
    try:
        return version("pystatedb")
    except PackageNotFoundError:
        return "0+local"
