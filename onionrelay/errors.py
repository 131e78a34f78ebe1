"""
Error taxonomy for onion construction, peeling and forwarding.

Cryptographic and framing errors raised while peeling are terminal for the
message at that relay. Construction errors are raised before anything is
sent.
"""


class OnionRoutingError(Exception):
    """Base class for all onion routing errors."""
    pass


class InvalidKey(OnionRoutingError):
    """A public, private or symmetric key could not be loaded or used."""
    pass


class DecryptionFailure(OnionRoutingError):
    """
    A wrapped key or a layer token could not be decrypted.

    Raised alike for "not addressed to this key" and "corrupted data";
    callers must not try to tell the two apart.
    """
    pass


class MalformedToken(OnionRoutingError):
    """A symmetric token is missing its IV/ciphertext separator."""
    pass


class MalformedLayer(OnionRoutingError):
    """A decrypted layer does not start with a valid address field."""
    pass


class MalformedMessage(OnionRoutingError):
    """An onion blob is missing its wrapped-key/token separator."""
    pass


class AddressOverflow(OnionRoutingError):
    """A next-hop address does not fit the fixed-width address field."""
    pass


class InsufficientRelays(OnionRoutingError):
    """Fewer relays than the minimum circuit length are available."""
    pass


class ForwardingFailure(OnionRoutingError):
    """The next hop could not be reached or refused the payload."""
    pass
