"""
Detecting the client's own version.

The codebase does not contain the version directly, as it would require
code changes on every release. The version is taken from the installed
package's metadata, and is determined only once when the code is loaded.
"""
import importlib.metadata

version: str | None = None

try:
    name, *_ = __name__.split('.')  # usually "inreq", unless renamed/forked.
    version = importlib.metadata.version(name)
except importlib.metadata.PackageNotFoundError:
    pass  # running from a source tree, not installed.
