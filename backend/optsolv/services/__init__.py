# Services package init
"""
OptSolv Backend — Services Layer
==================================

Service Inventory:
    - LLMService (abstract) / GeminiClient: generative model access + circuit breaker
    - StorageGateway:        validate and store an image, create its Document row
    - OcrGateway:            image URL → plain text
    - ClassificationGateway: text → validated tasks / notes / summary
    - pipeline_state:        PipelineState enum and transition table
    - PipelineOrchestrator:  upload → OCR → classify → persist, abort to idle on failure
    - LibraryService:        browse, toggle and delete documents, tasks and notes
    - PreferenceService:     persisted UI preferences per user

Gateways are module-level singletons; services that need a request session
are built per request in optsolv.dependencies.
"""
