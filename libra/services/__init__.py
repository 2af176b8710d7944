"""External collaborators and background services.

- iam: IBM Cloud IAM token exchange
- embeddings: sentence-transformers embedding provider
- indexer: Embedding back-fill for catalog items
- renderer: watsonx.ai reply rendering
"""
