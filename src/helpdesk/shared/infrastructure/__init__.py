"""
Shared Infrastructure
=====================

- Structured JSON logging
- Grafana OTLP metrics export
"""
