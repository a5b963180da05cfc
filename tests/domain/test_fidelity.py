from __future__ import annotations

from splkit.domain.fidelity import FidelityReport, PathComparison, Verdict


def _report() -> FidelityReport:
    return FidelityReport(
        entries=[
            PathComparison("/document[1]", Verdict.MATCH, "document"),
            PathComparison("/document[1]/title[1]", Verdict.VALUE_MISMATCH, "document", detail="text"),
            PathComparison(
                "/document[1]/component[1]/structuredBody[1]/component[1]/section[1]/title[1]",
                Verdict.MISSING,
                "section",
                section_code="34067-9",
            ),
            PathComparison(
                "/document[1]/component[1]/structuredBody[1]/component[1]/section[1]/text[1]",
                Verdict.EXTRA,
                "content_block",
                section_code="34067-9",
            ),
        ]
    )


def test_counts_cover_every_verdict() -> None:
    report = _report()

    assert report.counts == {
        Verdict.MATCH: 1,
        Verdict.MISSING: 1,
        Verdict.EXTRA: 1,
        Verdict.VALUE_MISMATCH: 1,
    }
    assert not report.is_faithful
    assert len(report.discrepancies) == 3


def test_discrepancies_are_grouped_by_entity_and_section() -> None:
    report = _report()

    assert report.by_entity == {"document": 1, "section": 1, "content_block": 1}
    assert report.by_section == {"(none)": 1, "34067-9": 2}


def test_empty_report_is_faithful() -> None:
    report = FidelityReport()

    assert report.is_faithful
    assert report.counts[Verdict.MATCH] == 0
    assert report.by_section == {}
