"""
chartops renders Helm charts for custom resources, caches the rendered manifests per release and installs or
uninstalls them against a Kubernetes cluster.
"""

__version__ = "0.1.0"
