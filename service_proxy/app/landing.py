"""
HTML landing page served at ``/``.
"""

from datetime import timedelta
from html import escape
from string import Template
from typing import Optional

from shared.config import format_duration


_LANDING_TEMPLATE = Template("""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Tekton Hub to Artifact Hub Proxy</title>
    <style>
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif;
            line-height: 1.6;
            background: #f8fafc;
            color: #333;
            display: flex;
            justify-content: center;
            padding: 3rem 1rem;
        }
        .container {
            background: white;
            border-radius: 16px;
            box-shadow: 0 20px 40px rgba(0, 0, 0, 0.1);
            max-width: 800px;
            width: 100%;
            padding: 2.5rem;
        }
        h1 { color: #2d3748; }
        .subtitle { color: #718096; }
        .endpoint {
            background: #f7fafc;
            padding: 0.5rem 1rem;
            margin: 0.4rem 0;
            border-left: 4px solid #667eea;
            font-family: 'Menlo', 'Ubuntu Mono', monospace;
            font-size: 0.9rem;
        }
        .method { color: #38a169; font-weight: bold; margin-right: 0.5rem; }
        .notice {
            background: #fed7d7;
            color: #742a2a;
            padding: 1rem;
            border-radius: 8px;
            margin-top: 2rem;
        }
        pre { background: #f7fafc; padding: 0.75rem; font-size: 0.8rem; overflow-x: auto; }
    </style>
</head>
<body>
    <div class="container">
        <h1>Tekton Hub to Artifact Hub Proxy</h1>
        <p class="subtitle">
            A transition proxy that answers Tekton Hub API calls with data from Artifact Hub.
            <strong>For migration assistance only</strong>: clients should move to Artifact Hub directly.
        </p>

        <h3>Available API endpoints</h3>
        <div class="endpoint"><span class="method">GET</span>/v1/catalogs</div>
        <div class="endpoint"><span class="method">GET</span>/v1/resources</div>
        <div class="endpoint"><span class="method">GET</span>/v1/query</div>
        <div class="endpoint"><span class="method">GET</span>/v1/resource/{catalog}/{kind}/{name}</div>
        <div class="endpoint"><span class="method">GET</span>/v1/resource/{catalog}/{kind}/{name}/{version}</div>
        <div class="endpoint"><span class="method">GET</span>/health</div>

        <h3>Testing with the Tekton Hub resolver</h3>
        <pre>apiVersion: tekton.dev/v1
kind: PipelineRun
metadata:
  generateName: hub-test-
spec:
  pipelineSpec:
    tasks:
      - name: fetch-repo
        taskRef:
          resolver: hub
          params:
            - name: kind
              value: task
            - name: name
              value: tkn
            - name: version
              value: "0.4"
            - name: catalog
              value: tekton</pre>

        <div class="notice">
            <strong>Cache notice:</strong> $cache_notice
        </div>
    </div>
</body>
</html>
""")


def render_landing_page(cache_ttl: Optional[timedelta]) -> str:
    """Render the landing page; ``cache_ttl`` is None when caching is off."""
    if cache_ttl is None:
        notice = "response caching is disabled, every request is forwarded to Artifact Hub."
    else:
        notice = (
            f"Artifact Hub responses are cached for {escape(format_duration(cache_ttl))}. "
            "Updates published to Artifact Hub may take that long to appear here."
        )
    return _LANDING_TEMPLATE.substitute(cache_notice=notice)
