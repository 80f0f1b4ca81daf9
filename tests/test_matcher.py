"""Tests for the match engine."""

from conftest import make_record

from pypst.matcher import MatchAnnotation, MatchPolicy, annotate, make_predicate
from pypst.tree import assemble, walk


class TestPredicates:
    """Tests for make_predicate()."""

    def test_token_matches_name(self):
        """Test a name substring matches under the token policy."""
        match = make_predicate("ssh", MatchPolicy.TOKEN)
        assert match(make_record(42, 1, "sshd", ("-D",)))

    def test_token_matches_pid(self):
        """Test the stringified pid is one of the tokens."""
        assert make_predicate("42", MatchPolicy.TOKEN)(make_record(42, 1, "sshd", ("-D",)))
        assert not make_predicate("41", MatchPolicy.TOKEN)(make_record(42, 1, "sshd", ("-D",)))

    def test_token_matches_argument(self):
        """Test any argument may contain the pattern."""
        match = make_predicate("notes", MatchPolicy.TOKEN)
        assert match(make_record(300, 200, "vim", ("-O", "notes.txt")))

    def test_token_does_not_span_tokens(self):
        """Test a pattern crossing two tokens does not match per token."""
        match = make_predicate("vim notes", MatchPolicy.TOKEN)
        assert not match(make_record(300, 200, "vim", ("notes.txt",)))

    def test_full_line_spans_tokens(self):
        """Test the full-line policy matches across argument boundaries."""
        match = make_predicate("vim notes", MatchPolicy.FULL_LINE)
        assert match(make_record(300, 200, "vim", ("notes.txt",)))

    def test_full_line_ignores_pid(self):
        """Test the pid is not part of the full command line."""
        match = make_predicate("300", MatchPolicy.FULL_LINE)
        assert not match(make_record(300, 200, "vim", ("notes.txt",)))

    def test_full_line_uses_json_rendering(self):
        """Test arguments with whitespace are matched in their JSON rendering."""
        record = make_record(7, 1, "proc", ("hello world",))

        assert make_predicate("hello world", MatchPolicy.FULL_LINE)(record)
        assert make_predicate('["proc","hello', MatchPolicy.FULL_LINE)(record)
        assert not make_predicate("proc hello", MatchPolicy.FULL_LINE)(record)


class TestAnnotation:
    """Tests for MatchAnnotation and annotate()."""

    def test_direct_and_descendant(self, sample_records):
        """Test both tables after annotating a forest."""
        forest = assemble(sample_records)
        annotation = annotate(forest, "vim")
        by_id = {r.id: r for r in walk(forest)}

        assert annotation.matched_directly(by_id[300])
        assert not annotation.matched_directly(by_id[200])
        assert annotation.matched_by_descendant(by_id[200])
        assert annotation.matched_by_descendant(by_id[100])
        assert annotation.matched_by_descendant(by_id[1])
        assert not annotation.matched_by_descendant(by_id[300])
        assert not annotation.matched_by_descendant(by_id[400])
        assert not annotation.matched_by_descendant(by_id[2])

    def test_one_evaluation_per_process(self, sample_records):
        """Test the predicate runs exactly once per process."""
        forest = assemble(sample_records)
        annotation = annotate(forest, "bash")

        assert annotation.evaluations == len(sample_records)

        # Querying again only hits the cache
        for record in walk(forest):
            annotation.is_included(record)
        assert annotation.evaluations == len(sample_records)
        assert annotation.cache_hits > 0

    def test_one_evaluation_on_deep_chain(self):
        """Test a long chain is still evaluated once per node."""
        records = [make_record(1, 0, "root")]
        records += [make_record(i, i - 1, f"n{i}") for i in range(2, 200)]
        records.append(make_record(200, 199, "needle"))
        forest = assemble(records)

        calls = []

        def predicate(p):
            calls.append(p.id)
            return p.name == "needle"

        annotation = MatchAnnotation(predicate)
        for record in walk(forest):
            annotation.is_included(record)

        assert sorted(calls) == list(range(1, 201))
        assert all(annotation.matched_by_descendant(r) for r in walk(forest) if r.id < 200)

    def test_annotate_chain_deeper_than_recursion_limit(self):
        """Test annotate() handles a chain far deeper than the interpreter stack."""
        records = [make_record(1, 0, "root")]
        records += [make_record(i, i - 1, f"n{i}") for i in range(2, 5001)]
        forest = assemble(records)

        annotation = annotate(forest, "n5000")

        assert annotation.evaluations == 5000
        assert all(annotation.is_included(r) for r in walk(forest))

    def test_lazy_queries_memoized(self, sample_records):
        """Test querying without fill() evaluates each process once at most."""
        forest = assemble(sample_records)
        calls = []

        def predicate(p):
            calls.append(p.id)
            return False

        annotation = MatchAnnotation(predicate)
        for _ in range(3):
            for record in walk(forest):
                annotation.matched_by_descendant(record)
                annotation.matched_directly(record)

        assert sorted(calls) == sorted(r.id for r in sample_records)

    def test_is_included_forced(self):
        """Test a forced process is included even without any match."""
        annotation = MatchAnnotation(lambda p: False)
        record = make_record(5, 1)

        assert not annotation.is_included(record)
        assert annotation.is_included(record, forced=True)

    def test_full_line_policy(self, sample_records):
        """Test annotate() honours the policy."""
        forest = assemble(sample_records)
        by_id = {r.id: r for r in walk(forest)}

        token = annotate(forest, "backup.sh --full", MatchPolicy.TOKEN)
        full = annotate(forest, "backup.sh --full", MatchPolicy.FULL_LINE)

        assert not token.matched_directly(by_id[500])
        assert full.matched_directly(by_id[500])

    def test_trace_logs_decisions(self, sample_records, trace_messages):
        """Test tracing logs each fresh decision to the trace logger."""
        annotation = annotate(assemble(sample_records), "vim", trace=True)
        annotation.log_summary()

        messages = trace_messages

        assert "(True) dir: [300] vim notes.txt" in messages
        assert "(True) child: [200] bash" in messages
        assert "(False) child: [300] vim notes.txt" in messages
        assert messages[-1] == f"Match cache hits: {annotation.cache_hits}"

    def test_no_trace_by_default(self, sample_records, trace_messages):
        """Test nothing is logged to the trace logger without tracing."""
        annotate(assemble(sample_records), "vim").log_summary()

        assert trace_messages == []
