from tests.fakes.fake_clock import FakeClock
from tests.fakes.fake_embedder import FailingEmbedder, FakeEmbedder

__all__ = ["FakeClock", "FakeEmbedder", "FailingEmbedder"]
