"""
Scan Services

Organized by responsibility, in the order a scan uses them:

1. discovery/ - snapshot lookup
   - snapshot_index.py: CDX index query for a domain / year

2. extraction/ - keyword search inside one archived page
   - html_document.py: BeautifulSoup wrapper (cleanup, text, scripts, markup)
   - extractor_service.py: TEXT / JS / COMMENT matching and snippets

3. scan/ - orchestration
   - scan.py: sequential fetch loop producing the SSE event stream
"""
