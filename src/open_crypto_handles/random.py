"""State of the process-wide libcrypto random generator.

Nothing in this package seeds the generator implicitly: RSA blinding, in
particular, assumes it was seeded beforehand.
"""

from .core.library import get_library


def status() -> bool:
    """Whether the generator has been seeded with enough entropy."""
    return get_library().RAND_status() == 1


def poll() -> None:
    """Seed the generator from the operating system entropy sources.

    Raises:
        CryptographicOperationError: If seeding fails
    """
    get_library().RAND_poll()
