"""Client-side encrypted time capsules.

Content is encrypted locally, the ciphertext envelope is stored in
content-addressed storage, and a ledger object records when (and under which
condition) the owner may retrieve and decrypt it again.
"""

__version__ = "0.1.0"
