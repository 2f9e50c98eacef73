#!/usr/bin/env python3
"""
Output Formatting Module for the Allocator CLI

Provides output formatting for CLI results as tables, JSON, CSV or YAML.
"""

import csv
import io
import json
from datetime import datetime
from typing import Any, Dict, List, Optional

import yaml
from tabulate import tabulate

from collection.fees import format_amount

AMOUNT_KEYS = {'cost', 'cost_per_token', 'treasury_balance', 'paid_amount', 'amount'}


class OutputFormatter:
    """Universal output formatter for CLI results."""

    def __init__(self, format_type: str = 'table', max_width: Optional[int] = None):
        """
        Initialize output formatter.

        Args:
            format_type: Output format (table, json, yaml, csv)
            max_width: Maximum width for table cell values
        """
        self.format_type = format_type
        self.max_width = max_width or 120

    def format(self, data: Any, headers: Optional[List[str]] = None) -> str:
        """
        Format data according to the configured format type.

        Args:
            data: Data to format
            headers: Optional headers for table/csv formats

        Returns:
            Formatted string output
        """
        if self.format_type == 'json':
            return self.format_json(data)
        elif self.format_type == 'yaml':
            return self.format_yaml(data)
        elif self.format_type == 'csv':
            return self.format_csv(data, headers)
        else:
            return self.format_table(data, headers)

    def format_json(self, data: Any) -> str:
        """Format data as JSON."""
        return json.dumps(data, indent=2, default=self._json_encoder)

    def format_yaml(self, data: Any) -> str:
        """Format data as YAML."""
        # Round-trip through JSON so datetimes and models become plain values
        plain = json.loads(self.format_json(data))
        return yaml.safe_dump(plain, default_flow_style=False, sort_keys=False)

    def format_csv(self, data: Any, headers: Optional[List[str]] = None) -> str:
        """Format data as CSV."""
        if isinstance(data, dict):
            data = [data]

        if not isinstance(data, list) or not data:
            return ""

        rows = [item if isinstance(item, dict) else {'value': item} for item in data]
        output = io.StringIO()
        fieldnames = headers or list(rows[0].keys())
        writer = csv.DictWriter(output, fieldnames=fieldnames, extrasaction='ignore')
        writer.writeheader()
        for row in rows:
            writer.writerow({k: self._format_value(k, v) for k, v in row.items()})

        return output.getvalue().strip()

    def format_table(self, data: Any, headers: Optional[List[str]] = None) -> str:
        """Format data as a table."""
        if isinstance(data, dict):
            return self._format_dict_table(data)
        elif isinstance(data, list):
            return self._format_list_table(data, headers)
        else:
            return str(data)

    def _format_dict_table(self, data: Dict[str, Any]) -> str:
        """Format dictionary as a key-value table."""
        table_data = [[key, self._format_value(key, value)] for key, value in data.items()]
        return tabulate(table_data, tablefmt='plain')

    def _format_list_table(self, data: List[Any], headers: Optional[List[str]] = None) -> str:
        """Format list as a table."""
        if not data:
            return "No results"

        if not isinstance(data[0], dict):
            return "\n".join(str(item) for item in data)

        headers = headers or list(data[0].keys())
        rows = [
            [self._format_value(h, item.get(h, "")) for h in headers]
            for item in data
        ]
        return tabulate(rows, headers=headers, tablefmt='simple')

    def _format_value(self, key: str, value: Any) -> str:
        """Format a single value for display."""
        if isinstance(value, bool):
            return "yes" if value else "no"
        if key in AMOUNT_KEYS and isinstance(value, int):
            return format_amount(value)
        if isinstance(value, datetime):
            return value.strftime("%Y-%m-%d %H:%M:%S UTC")
        if isinstance(value, (list, dict)):
            value = json.dumps(value, default=self._json_encoder)

        text = str(value) if value is not None else ""
        if len(text) > self.max_width:
            text = text[:self.max_width - 3] + "..."
        return text

    @staticmethod
    def _json_encoder(obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if hasattr(obj, 'model_dump'):
            return obj.model_dump(mode='json', by_alias=True)
        return str(obj)
