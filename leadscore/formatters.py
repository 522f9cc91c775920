"""Output formatters for analysis results."""

from .models import CallAnalysisView, CallPage, SalesCall, ScoringResult

CATEGORY_NAMES = (
    ("urgency", "Urgency"),
    ("budget", "Budget"),
    ("interest", "Interest"),
    ("engagement", "Engagement"),
)


def _truncate(text: str, width: int) -> str:
    return text[:width] + "..." if len(text) > width else text


def format_scoring(scoring: ScoringResult) -> str:
    """
    Format a scoring result for console output.

    Args:
        scoring: ScoringResult from the engine

    Returns:
        Formatted string for console display
    """
    s = scoring.scores
    output = []
    output.append(f"\n📊 Overall score: {s.overall}/100 (confidence {scoring.analysis.confidence}%)")
    for key, label in CATEGORY_NAMES:
        phrases = getattr(scoring.analysis.key_phrases, key)
        line = f"   • {label + ':':<12}{getattr(s, key):>3}/100"
        if phrases:
            line += f"  [{', '.join(phrases)}]"
        output.append(line)

    if scoring.analysis.objections:
        output.append(f"\n⚠️  Objections: {', '.join(scoring.analysis.objections)}")

    output.append(f"\n💡 {scoring.analysis.notes}")
    output.append(f"   (lexicon v{scoring.lexicon_version})")
    return "\n".join(output)


def format_call_view(view: CallAnalysisView) -> str:
    """Format a single call with its customer and statuses."""
    call = view.sales_call
    output = []
    output.append("\n" + "=" * 70)
    output.append(f"SALES CALL #{call.id}")
    output.append("=" * 70)

    if view.customer:
        c = view.customer
        contact = c.phone + (f" | {c.email}" if c.email else "")
        output.append(f"\n👤 {c.name} ({contact})")
    output.append(f"📁 {call.audio_file_path}")
    output.append(f"📅 {call.created_at.strftime('%Y-%m-%d %H:%M')}")
    output.append(f"🔎 Analysis: {call.analysis_status} | Scoring: {call.scoring_status}")

    if view.transcription_stats:
        st = view.transcription_stats
        output.append(
            f"📝 {st.word_count} words, {st.character_count} chars"
            + (f", {st.words_per_minute} wpm ({st.speaking_rate})" if st.words_per_minute else "")
        )
        output.append(f"   {_truncate(call.transcript, 200)}")

    if call.has_scores:
        output.append(
            f"\n📊 Overall: {call.overall_score}/100 | "
            f"U:{call.urgency_score} B:{call.budget_score} "
            f"I:{call.interest_score} E:{call.engagement_score}"
        )
        output.append(f"💡 {call.analysis_notes}")

    output.append("\n" + "=" * 70)
    return "\n".join(output)


def _status_icon(call: SalesCall) -> str:
    if call.has_scores:
        return "✅"
    if call.has_transcript:
        return "📝"
    return "⏳"


def format_call_page(page: CallPage) -> str:
    """Format one page of a call listing."""
    if not page.items:
        return "No sales calls found."

    output = []
    output.append(f"\n📋 Sales calls (page {page.page} of {page.total_pages}, {page.total} total)")
    output.append("   " + "-" * 66)
    for call in page.items:
        score = f"{call.overall_score}/100" if call.has_scores else "-"
        customer = page.customers.get(call.customer_id)
        who = customer.name if customer else f"customer {call.customer_id}"
        output.append(
            f"   {_status_icon(call)} #{call.id:<5} {who:<20} "
            f"{call.state.value:<12} score {score}"
        )

    summary = page.summary
    output.append(
        f"\n   ⏳ {summary.pending} pending | 📝 {summary.transcribed} transcribed | "
        f"✅ {summary.scored} scored"
    )
    return "\n".join(output)
