"""
Periodically refreshed local cache of mod metadata and release assets.

This package is responsible for:
* Merging the remote mod manifest with a local list of additional repositories.
* Resolving every mod's GitHub release history.
* Hashing release assets, reusing cached hashes while they are fresh.
* Writing the mod cache and a reverse lookup table keyed by asset hash.
"""
