# Services package init
"""
StudyGenie Backend — Services Layer
=====================================

What:  Business logic between routes (HTTP) and the database / AI providers.

Service Inventory:
    - ProviderAdapter (abstract): one external AI service behind a uniform contract
    - OpenRouterAdapter / GeminiAdapter / HuggingFaceImageAdapter: concrete providers
    - ResilientInvoker: priority-ordered provider attempts with canned fallback
    - MockResponseGenerator: deterministic schema-complete fallbacks
    - FeatureRequestBuilder: feature payload → provider-neutral PromptSpec
    - HistoryService: per-user interaction log
    - ImageUploadService: upload validation for image analysis
    - StudyAssistantService: orchestrates history → prompt → invoke → record
"""
