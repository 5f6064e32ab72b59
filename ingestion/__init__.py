"""
Fetch and transform components for the Jira corpus pipeline.

Modules:
    transport: Single-request GET with retry classification and backoff
    runner: Resumable pagination runner (checkpointed fetch-all-pages loop)
    waits: Cancellable sleeps used at every suspension point
    cli: ``fetch`` / ``transform`` command line entry point

Subpackages:
    extractors: Jira REST client (search, issue, comments)
    stores: Checkpoint and raw page storage interfaces and file backends
    transformers: HTML to text, issue normalization, transform pipeline
    loaders: Append-only JSONL output

Architecture:
    The pipeline runs in two independent phases:

    1. Fetch - page through search results, persist every raw page, then
       advance the checkpoint
    2. Transform - read raw pages in offset order, normalize, deduplicate by
       issue key and append to JSONL

    A crash during fetch re-fetches at most one page on the next run; a
    broken raw page during transform is skipped without stopping the run.

Usage:
    from ingestion.runner import PaginationRunner
    from ingestion.stores import FileCheckpointStore, FileRawPageStore
    from ingestion.extractors.jira_client import JiraClient

Example:
    async with JiraClient() as client:
        runner = PaginationRunner(client, FileCheckpointStore(), FileRawPageStore())
        result = await runner.run("SPARK")

    print(f"Fetched {result['pages_fetched']} pages")
"""
