"""Tests for diff segmentation."""

from diffsentry_core.models import ChangedFile
from diffsentry_core.utils.diff import MAX_CHUNK_LINES, needs_chunking, split_into_chunks

HEADER = ["diff --git a/app.ts b/app.ts", "index 1111111..2222222 100644", "--- a/app.ts", "+++ b/app.ts"]

HUNK_1 = ["@@ -1,3 +1,4 @@", " import x", "+const a = 1;", " const b = 2;", "-old();"]
HUNK_2 = ["@@ -20,2 +21,3 @@", " function f() {", "+  return eval(input);", "+  // done", " }"]
HUNK_3 = ["@@ -40,1 +42,1 @@", "-removed", "+added"]


def _patch(*hunks, header=HEADER):
    lines = list(header)
    for hunk in hunks:
        lines.extend(hunk)
    return "\n".join(lines)


def _hunk_portion(chunk):
    return chunk.lines


class TestSplitIntoChunks:
    def test_one_chunk_per_hunk(self):
        chunks = split_into_chunks(_patch(HUNK_1, HUNK_2, HUNK_3))
        assert len(chunks) == 3
        assert [c.lines[0] for c in chunks] == [HUNK_1[0], HUNK_2[0], HUNK_3[0]]

    def test_chunks_reproduce_hunks_in_order(self):
        chunks = split_into_chunks(_patch(HUNK_1, HUNK_2, HUNK_3))
        rebuilt = [line for c in chunks for line in _hunk_portion(c)]
        assert rebuilt == HUNK_1 + HUNK_2 + HUNK_3

    def test_header_repeated_in_every_chunk(self):
        chunks = split_into_chunks(_patch(HUNK_1, HUNK_2))
        for chunk in chunks:
            assert chunk.header == HEADER
            assert chunk.content.startswith("diff --git a/app.ts b/app.ts\n")

    def test_header_not_duplicated_into_first_chunk_body(self):
        chunks = split_into_chunks(_patch(HUNK_1))
        assert chunks[0].lines == HUNK_1

    def test_counts_exclude_file_markers(self):
        chunks = split_into_chunks(_patch(HUNK_1, HUNK_2))
        assert (chunks[0].additions, chunks[0].deletions) == (1, 1)
        assert (chunks[1].additions, chunks[1].deletions) == (2, 0)

    def test_github_patch_without_header(self):
        chunks = split_into_chunks(_patch(HUNK_1, HUNK_2, header=[]))
        assert len(chunks) == 2
        assert chunks[0].header == []
        assert chunks[0].content == "\n".join(HUNK_1)

    def test_oversized_hunk_is_split(self):
        big = ["@@ -1,300 +1,300 @@"] + [f"+line {i}" for i in range(250)]
        chunks = split_into_chunks(_patch(big, HUNK_2, header=[]))
        assert len(chunks) == 4
        assert all(len(c.lines) <= MAX_CHUNK_LINES + 1 for c in chunks)
        assert chunks[0].lines[0] == big[0]
        rebuilt = [line for c in chunks for line in c.lines]
        assert rebuilt == big + HUNK_2
        assert sum(c.additions for c in chunks[:3]) == 250

    def test_hunk_header_never_separated_from_its_lines(self):
        chunks = split_into_chunks(_patch(HUNK_1, HUNK_2, HUNK_3))
        for chunk in chunks:
            headers = [i for i, line in enumerate(chunk.lines) if line.startswith("@@")]
            assert headers in ([], [0])
            assert len(chunk.lines) > 1

    def test_no_hunk_headers_returns_whole_diff(self):
        patch = "+a\n+b\n-c"
        chunks = split_into_chunks(patch)
        assert len(chunks) == 1
        assert chunks[0].content == patch
        assert (chunks[0].additions, chunks[0].deletions) == (2, 1)

    def test_empty_diff_yields_single_empty_chunk(self):
        chunks = split_into_chunks("")
        assert len(chunks) == 1
        assert chunks[0].content == ""
        assert (chunks[0].additions, chunks[0].deletions) == (0, 0)


class TestNeedsChunking:
    def test_large_diff_with_many_additions(self):
        f = ChangedFile(path="a.ts", status="modified", additions=80, patch="+" * 4000)
        assert needs_chunking(f) is True

    def test_large_diff_with_few_additions(self):
        f = ChangedFile(path="a.ts", status="modified", additions=10, patch="-" * 4000)
        assert needs_chunking(f) is False

    def test_small_diff(self):
        f = ChangedFile(path="a.ts", status="modified", additions=80, patch="+x\n" * 10)
        assert needs_chunking(f) is False

    def test_missing_patch(self):
        f = ChangedFile(path="a.png", status="added", additions=0, patch=None)
        assert needs_chunking(f) is False
