"""Prompt templates sent to the text/image analysis service."""

TRANSCRIBE_PROMPT = "Transcribe the Tibetan text in this image. Provide only the transcribed text."

FORMAT_PROMPT = (
    "You are given {page_count} page image(s) of a Tibetan text, each followed by a machine transcription of that page.\n"
    "Merge the transcriptions into one clean Tibetan text in page order.\n\n"
    "Rules:\n"
    "1) Check each transcription against its image and correct obvious misreadings.\n"
    "2) Remove duplicated lines where consecutive pages overlap.\n"
    "3) Keep the original line and paragraph structure; use Markdown headings or lists only where the page itself has them.\n"
    "4) Output only the merged Tibetan text, with no commentary."
)

PAGE_LABEL = "Page {number} transcription:\n{transcript}"

TRANSLATE_PROMPT = "Translate the following Tibetan text into English. Provide only the translated text: \n\n{text}"

_SELECTION_CONTEXT = (
    "Here is a full Tibetan text and its English translation:\n\n"
    "Tibetan Text:\n---\n{full_text}\n---\n\n"
    "English Translation:\n---\n{translation}\n---\n\n"
    "Within the Tibetan text, the user has selected this specific phrase:\n\n"
    "Selected Phrase:\n---\n{selected}\n---\n\n"
)

EXPLAIN_PROMPT = _SELECTION_CONTEXT + (
    "Please provide a translation and a brief explanation of the selected Tibetan phrase. "
    "Use both the full Tibetan text and its English translation to provide the most accurate and context-aware explanation. "
    "Focus on clarifying the meaning of the selection. "
    "Don't begin with opening remarks like \"of course\", and don't suggest future assistance. "
    "Only give the translation and explain the meaning of the selection in the context of the full phrase."
)

ALTERNATES_PROMPT = _SELECTION_CONTEXT + (
    "List three to five alternate English translations of the selected phrase as a Markdown bullet list. "
    "After each alternative, add one short sentence on the nuance it carries and when it would be preferred in this context. "
    "Don't begin with opening remarks and don't suggest future assistance."
)
