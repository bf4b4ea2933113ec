"""Service orchestration layer: coordinates multi-service workflows.

Modules:
- pipeline_executor: runs one job through categorize -> report -> anchor -> persist.
- scheduler: polls for pending jobs and feeds them to the executor one at a time.
- job_service: job CRUD and manual report requests for the HTTP layer.
- runtime: builds the per-process executor/scheduler pair.
"""
