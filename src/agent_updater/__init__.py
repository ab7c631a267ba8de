"""Self-update agent for package-managed hosts.

Detects the host's package manager, fetches the latest release manifest and
artifact from the regional storage bucket, installs it with the native
package manager and runs a delayed post-install sanity check.
"""

__version__ = "0.1.0"
