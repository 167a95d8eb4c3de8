from tests.fakes.fake_backing_store import FakeBackingStore

__all__ = ["FakeBackingStore"]
