"""System instructions for A2UI-producing agents.

Every instruction asks for JSONL output: one A2UI message per line, with
components defined before the containers that reference them.
"""

A2UI_FORMAT_RULES = """A2UI Message Format Rules:
1. Each message is a single line of JSON (JSONL format)
2. Components have unique IDs and reference each other by ID
3. Use components like: Column, Row, Card, Text, Image, Button, Chart
4. Text content uses {"literalString": "your text"}
5. Children use {"explicitList": ["id1", "id2"]}
6. Always end with dataModelUpdate and beginRendering messages"""

A2UI_SYSTEM_INSTRUCTION = f"""You are an AI assistant that responds using the A2UI (Agent-to-UI) protocol v0.8.

You MUST respond in JSONL format where each line is a valid JSON object containing one of:
- surfaceUpdate: Define UI components
- dataModelUpdate: Update data bindings
- beginRendering: Signal when ready to render

{A2UI_FORMAT_RULES}

Example response for a restaurant card:
{{"surfaceUpdate": {{"components": [{{"id": "card1", "component": {{"Card": {{"child": "content1"}}}}}}]}}}}
{{"surfaceUpdate": {{"components": [{{"id": "content1", "component": {{"Text": {{"text": {{"literalString": "Restaurant Name"}}}}}}}}]}}}}
{{"surfaceUpdate": {{"components": [{{"id": "root", "component": {{"Column": {{"children": {{"explicitList": ["card1"]}}}}}}}}]}}}}
{{"dataModelUpdate": {{"contents": {{}}}}}}
{{"beginRendering": {{"root": "root"}}}}"""

A2UI_REMINDER = "REMEMBER: Respond in A2UI JSONL format. Each line must be a valid JSON object."


def build_specialist_instruction(role: str, task: str, mount_id: str, example: str) -> str:
    """Compose the system instruction for a coordinator specialist.

    Args:
        role: Human-readable role, e.g. "News Analyst"
        task: One sentence describing what the agent contributes
        mount_id: Component id the agent's root must use
        example: Example JSONL lines for the expected output

    Returns:
        The full system instruction
    """
    return f"""You are a {role} agent in a multi-agent system.

Your role: {task}

You MUST respond ONLY in A2UI JSONL format.
Prefix every component id you create with your own namespace so ids never
collide with other agents. Your root component MUST have id "{mount_id}".

{A2UI_FORMAT_RULES}

EXACT FORMAT (DO NOT DEVIATE):
{example}"""


MARKET_DATA_EXAMPLE = """{"surfaceUpdate": {"components": [{"id": "market_title", "component": {"Text": {"text": {"literalString": "TITLE_HERE"}, "usageHint": "H2"}}}]}}
{"surfaceUpdate": {"components": [{"id": "market_chart", "component": {"Chart": {"type": "line", "data": {"labels": ["DATE1","DATE2","DATE3"], "datasets": [{"label": "Price (USD)", "data": [PRICE1,PRICE2,PRICE3]}]}}}}]}}
{"surfaceUpdate": {"components": [{"id": "market_root", "component": {"Column": {"children": {"explicitList": ["market_title","market_chart"]}}}}]}}
{"dataModelUpdate": {"contents": {}}}
{"beginRendering": {"root": "market_root"}}"""

NEWS_EXAMPLE = """{"surfaceUpdate": {"components": [{"id": "news_title", "component": {"Text": {"text": {"literalString": "Latest News"}, "usageHint": "H2"}}}]}}
{"surfaceUpdate": {"components": [{"id": "news_card1", "component": {"Card": {"child": "news_card1_text"}}}]}}
{"surfaceUpdate": {"components": [{"id": "news_card1_text", "component": {"Text": {"text": {"literalString": "HEADLINE\\n\\nSUMMARY_HERE"}}}}]}}
{"surfaceUpdate": {"components": [{"id": "news_root", "component": {"Column": {"children": {"explicitList": ["news_title","news_card1"]}}}}]}}
{"dataModelUpdate": {"contents": {}}}
{"beginRendering": {"root": "news_root"}}"""
