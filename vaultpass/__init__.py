"""
vaultpass: secret discovery, session renewal and payload crypto for HashiCorp Vault.

Public entry points:
    vaultpass.vault.client.VaultClient        -> async HTTP binding
    vaultpass.vault.search.SearchCoordinator  -> multi-engine secret search
    vaultpass.session.lifecycle               -> proactive token renewal
    vaultpass.crypto.VaultCrypto              -> versioned encrypt/decrypt
"""

__version__ = "0.1.0"
