"""Test answer composition"""

import pytest

from learning_assistant.exceptions import AllProvidersFailedError
from learning_assistant.rag.chain import AnswerComposer
from learning_assistant.rag.prompt_templates import NO_INFORMATION_ANSWER
from learning_assistant.rag.retriever import MODE_EMBEDDING, RetrievalResult, RetrievedChunk


def make_retrieval(*similarities):
    chunks = [
        RetrievedChunk(
            document_id=7,
            document_title="Genetics",
            chunk_index=i,
            text=f"Chunk {i}: " + "DNA is a double helix. " * 10,
            similarity=similarity
        )
        for i, similarity in enumerate(similarities)
    ]
    return RetrievalResult(chunks=chunks, confidence=80, mode=MODE_EMBEDDING)


@pytest.mark.asyncio
async def test_empty_retrieval_answers_without_provider_call(fake_provider, make_orchestrator, rag_settings):
    gemini = fake_provider("gemini")
    composer = AnswerComposer(make_orchestrator(gemini), rag_settings)

    answer = await composer.answer("What is DNA?", RetrievalResult())

    assert answer.text == NO_INFORMATION_ANSWER
    assert answer.sources == []
    assert answer.confidence == 0
    assert gemini.chat_calls == []


@pytest.mark.asyncio
async def test_answer_is_grounded_in_chunks(fake_provider, make_orchestrator, rag_settings):
    gemini = fake_provider("gemini", chat_text="DNA is a double helix.")
    composer = AnswerComposer(make_orchestrator(gemini), rag_settings)
    retrieval = make_retrieval(0.9, 0.8, 0.7)

    answer = await composer.answer("What is DNA?", retrieval)

    assert answer.text == "DNA is a double helix."
    assert answer.confidence == 80
    assert answer.provider == "gemini"

    call = gemini.chat_calls[0]
    assert call["messages"] == [{"role": "user", "content": "What is DNA?"}]
    assert "based ONLY on the provided context" in call["system_instruction"]
    assert 'From "Genetics": Chunk 0:' in call["system_instruction"]
    assert call["preferences"].temperature == 0.7
    assert call["preferences"].max_tokens == 500


@pytest.mark.asyncio
async def test_sources_carry_snippet_and_percentage(fake_provider, make_orchestrator, rag_settings):
    composer = AnswerComposer(make_orchestrator(fake_provider("gemini")), rag_settings)
    retrieval = make_retrieval(0.876)

    answer = await composer.answer("What is DNA?", retrieval)

    source = answer.sources[0]
    assert source["document_id"] == 7
    assert source["document_title"] == "Genetics"
    assert source["similarity"] == 88
    assert source["snippet"] == retrieval.chunks[0].text[:100] + "..."


@pytest.mark.asyncio
async def test_provider_failure_propagates(fake_provider, make_orchestrator, rag_settings):
    gemini = fake_provider("gemini", chat_error=Exception("You exceeded your current quota"))
    composer = AnswerComposer(make_orchestrator(gemini), rag_settings)

    with pytest.raises(AllProvidersFailedError):
        await composer.answer("What is DNA?", make_retrieval(0.9))
