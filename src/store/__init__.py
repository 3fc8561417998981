"""Publishing and change tracking layer.

This module fingerprints merged datasets, persists published fingerprints,
and writes verified artifacts to object storage.
"""
