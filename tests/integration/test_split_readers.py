"""End-to-end: one stream divided among several readers."""

from shardreader import (
    DynamicCheckpointGenerator,
    InMemoryStreamClient,
    StartingPoint,
    StaticCheckpointGenerator,
    StreamReader,
)


class TestSplitReaders:

    def test_split_readers_cover_the_stream_once(self, clock):
        client = InMemoryStreamClient(5, clock=clock)
        produced = {client.put(f"k{i}", b"v").unique_id for i in range(100)}

        initial = DynamicCheckpointGenerator(StartingPoint.trim_horizon()).generate(client)
        parts = initial.split_into(2)
        assert sorted(pid for part in parts for pid in part.partition_ids) == client.partition_ids

        seen = []
        for part in parts:
            reader = StreamReader(client, StaticCheckpointGenerator(part), clock=clock)
            available = reader.start()
            while available:
                seen.append(reader.current_id())
                available = reader.advance()
            assert set(reader.partition_ids) == set(part.partition_ids)
            reader.close()

        assert len(seen) == len(produced)
        assert set(seen) == produced
