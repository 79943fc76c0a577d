"""manifest-gate — validate Kubernetes manifests against built-in and CRD schemas."""

__version__ = "0.1.0"
