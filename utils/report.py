"""
Plain-text report for one InsightRecord, ready for any notification sink.
"""

from datetime import date
from typing import Optional

from models.schemas import InsightRecord, InsightSource


def sentiment_label(value: float) -> str:
    if value > 0:
        return "📈 Positive"
    if value < 0:
        return "📉 Negative"
    return "➡️ Neutral"


def _direction(value: float) -> str:
    if value > 0:
        return "📈"
    if value < 0:
        return "📉"
    return "➡️"


class ReportRenderer:
    """Pure formatter: same record in, same text out."""

    title = "Daily Market Insights Report"

    def render(self, record: InsightRecord, report_date: Optional[date] = None) -> str:
        report_date = report_date or record.generated_at.date()
        lines = [
            f"📊 {self.title} - {report_date.isoformat()}",
            "",
            f"🤖 Overall Sentiment: {sentiment_label(record.overall_sentiment)} "
            f"({record.overall_sentiment:+.2f})",
            "",
            "🔍 Key Insights:",
        ]
        lines += [f"• {i}" for i in record.key_insights] or ["• None reported"]

        lines += ["", "🏢 Competitor Analysis:"]
        if record.competitor_analysis:
            for name, ci in record.competitor_analysis.items():
                lines.append(f"• {name}: {_direction(ci.sentiment)} {ci.trend} ({ci.sentiment:+.2f})")
        else:
            lines.append("• No competitor data")

        lines += ["", "💡 Recommendations:"]
        lines += [f"• {r}" for r in record.recommendations] or ["• None"]

        sources = ", ".join(record.data_sources_used) or "Sample data only"
        lines += ["", f"📊 Data Sources: {sources}"]

        if record.source == InsightSource.FALLBACK:
            lines.append("⚠️ AI analysis unavailable - baseline fallback report")
        else:
            lines.append("🤖 Generated by TrendSage AI Pipeline")
        return "\n".join(lines)
