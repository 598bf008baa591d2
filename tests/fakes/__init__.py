from tests.fakes.fake_clock import FakeClock, SequentialIds
from tests.fakes.fake_identity import FakeIdentityProvider
from tests.fakes.fake_loader import FakeGraphLoader, StaticGraphLoader

__all__ = [
    "FakeClock",
    "SequentialIds",
    "FakeIdentityProvider",
    "FakeGraphLoader",
    "StaticGraphLoader",
]
