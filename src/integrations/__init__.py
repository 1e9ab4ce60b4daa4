"""
Integrations Module - External System Integrations
===================================================

Modules:
    query_executor: QueryExecutor protocol, ClusterCatalog and the Kusto REST executor
    audit: Audit sink recording successful tool results as JSON lines
    issue_trackers: GitHub issue and Azure DevOps work item clients
    document_store: Cosmos DB and AI Search executors over the async Azure SDKs

Kusto and issue tracker calls go through httpx.AsyncClient and document queries
through the async Azure SDK clients, so calls can be awaited and
cancelled without blocking other sessions.
"""
