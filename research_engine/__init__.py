"""
Company Lens Research Engine
──────────────────────────────
Section orchestration for the company dashboard:

    from research_engine.orchestrator.section_orchestrator import SectionOrchestrator
    state = await orchestrator.resolve_section("Apple", Section.STOCK_PERFORMANCE)
"""
