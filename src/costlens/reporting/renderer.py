"""
Report rendering.
Serializes analysis and forecast results to JSON, YAML or Markdown.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from jinja2 import Environment, Template

from ..core.exceptions import ValidationError

logger = logging.getLogger(__name__)

FORMATS = ("json", "yaml", "markdown")


def _money(value: Optional[float]) -> str:
    if value is None:
        return "n/a"
    return "${:,.2f}".format(value)


def _pct(value: Optional[float]) -> str:
    if value is None:
        return "n/a"
    return "{:+.1f}%".format(value)


ANALYSIS_TEMPLATE = """# Cost Analysis Report

Generated: {{ report_date }}

## Key Metrics

| Metric | Value |
|--------|-------|
| Total Cost | {{ data.totalCost | money }} |
| Services | {{ data.serviceCount }} |
| Projected Month End | {{ data.monthEndProjection | money }} |
| Potential Savings | {{ data.potentialSavings | money }} |
| Cost Points | {{ data.pointCount }} ({{ data.omittedCount }} omitted) |
{% if data.statistics %}
## Trend ({{ data.granularity }})

- Average per period: {{ data.statistics.avgMonthlyCost | money }}
- Highest: {{ data.statistics.highestPeriod.periodLabel }} ({{ data.statistics.highestPeriod.cost | money }})
- Lowest: {{ data.statistics.lowestPeriod.periodLabel }} ({{ data.statistics.lowestPeriod.cost | money }})
- Overall trend: **{{ data.statistics.overallTrend }}** ({{ data.statistics.trendDiff | pct }})
- Volatility: {{ data.statistics.volatility }}
{% endif %}
## Services

| Service | Cost |
|---------|------|
{% for service in data.services %}| {{ service.displayName }} | {{ service.totalCost | money }} |
{% endfor %}
## Anomalies ({{ data.anomalies.totalAnomalies }}, {{ data.windowDays }}-day baseline)
{% for anomaly in data.anomalies.anomalies[:10] %}
- {{ anomaly.date }} **{{ anomaly.serviceName }}** {{ anomaly.costAmount | money }} ({{ anomaly.severity }} {{ anomaly.direction }}, z={{ "%.2f" | format(anomaly.deviation) }})
{%- endfor %}
{% for rec in data.anomalies.recommendations %}
> **{{ rec.title }}**: {{ rec.description }}
{% endfor %}
## Optimization Opportunities
{% for suggestion in data.suggestions %}
### {{ suggestion.title }}

{{ suggestion.description }}

Potential Savings: {{ suggestion.potentialSavings | money }}/month
{% else %}
No optimization suggestions.
{% endfor %}
"""

FORECAST_TEMPLATE = """# Cost Forecast

Generated: {{ report_date }}

Confidence: {{ "%.0f" | format(data.confidence) }}%{% if data.insufficientData %} (insufficient history){% endif %}

| # | Month | Base | Adjusted | Revenue | Confidence |
|---|-------|------|----------|---------|------------|
{% for period in data.periods %}| {{ period.periodIndex }} | {{ period.date[:7] }} | {{ period.baseCost | money }} | {{ period.businessAdjustedCost | money }} | {{ period.revenueProjection | money }} | {{ "%.0f" | format(period.confidenceLevel) }}% |
{% endfor %}
Total projected: {{ data.totalProjectedCost | money }}
{% if scenarios %}
## Scenarios

| Scenario | Total | Variance | Impact | Risk |
|----------|-------|----------|--------|------|
{% for row in scenarios %}| {{ row.name }} | {{ row.totalCost | money }} | {{ row.costVariance | money }} | {{ row.percentageImpact | pct }} | {{ row.riskLevel }} |
{% endfor %}{% endif %}"""


class ReportRenderer:
    """Render result dictionaries in one of the supported formats"""

    def __init__(self):
        self.environment = Environment(trim_blocks=True)
        self.environment.filters["money"] = _money
        self.environment.filters["pct"] = _pct
        self.templates = {
            'analysis': self._load_template(ANALYSIS_TEMPLATE),
            'forecast': self._load_template(FORECAST_TEMPLATE),
        }

    def _load_template(self, source: str) -> Template:
        return self.environment.from_string(source)

    def render(self, data: Dict[str, Any], fmt: str = "json", template_name: str = "analysis",
               scenarios: Optional[List[Dict[str, Any]]] = None) -> str:
        """
        Render a result dictionary.

        Args:
            data: Output of a result object's to_dict()
            fmt: 'json', 'yaml' or 'markdown'
            template_name: Markdown template, 'analysis' or 'forecast'
            scenarios: Scenario comparison rows for the forecast template
        """
        if fmt == "json":
            payload = dict(data, scenarios=scenarios) if scenarios is not None else data
            return json.dumps(payload, indent=2, default=str)
        if fmt == "yaml":
            payload = dict(data, scenarios=scenarios) if scenarios is not None else data
            return yaml.safe_dump(payload, default_flow_style=False, sort_keys=False)
        if fmt == "markdown":
            template = self.templates.get(template_name)
            if template is None:
                raise ValidationError(f"Template {template_name} not found")
            return template.render(
                data=data,
                scenarios=scenarios or [],
                report_date=datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC'),
            )
        raise ValidationError(f"Unsupported format {fmt!r}, expected one of {list(FORMATS)}")

    def write(self, content: str, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        logger.info(f"Report saved to {path}")
        return path
