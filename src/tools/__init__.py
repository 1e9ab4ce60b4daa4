"""
Tools Module - Function Calling Capabilities for the Clearwater Agent
=====================================================================

Every tool is a ToolDescriptor built by a plugin factory and registered in
the ToolRegistry at startup. The registry is the only dispatch path: the
Agent/Runner framework sees FunctionTool wrappers (wrappers.py) that call
back into the orchestrator, which invokes through the registry.

Modules:
    registry: ToolRegistry and build_registry (static catalog plus help tool)
    wrappers: FunctionTool adapters for the Agent/Runner framework
    kusto: Cluster listing, schema lookup, query, paging and counting
    safefly: SafeFly request and service lookups
    devops: Build, work item, commit and pull request lookups
    meta: Feedback, bug, error and improvement capture
    issues: GitHub issue and Azure DevOps work item creation
    cosmos: SQL queries against a Cosmos DB container
    ai_search: Full-text queries against an Azure AI Search index
"""
