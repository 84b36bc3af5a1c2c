"""
Prompt templates for every generation call in the pipeline

Optional sections are rendered by the caller and passed in as plain
variables, so literal JSON inside them never meets template parsing.
"""
import json
from typing import List, Optional

from langchain_core.prompts import ChatPromptTemplate


PLANNER_PROMPT = ChatPromptTemplate.from_messages([
    (
        "system",
        "You are an amis page configuration planner. You break a UI requirement "
        "into small, ordered, independently generatable sub-tasks."
    ),
    (
        "human",
        "User requirement: {requirement}\n"
        "{data_section}"
        "{replan_section}\n"
        "Produce the task list. Every task has:\n"
        "- id: unique identifier (task-1, task-2, ...)\n"
        "- description: what the task builds, specific enough to look up documentation\n"
        "- type: component category (form-item-input-text, form-item-select, crud-table, form-assembly ...)\n"
        "- priority: 1=high, 2=medium, 3=low\n"
        "- dataDependencies: data field names this task's output must reference (may be empty)\n\n"
        "Rules:\n"
        "1. Return ONLY a JSON array, no other text\n"
        "2. List tasks in execution order\n"
        "3. The last task must be an assembly task (form-assembly, page-assembly) that combines all components\n"
        "4. Do not guess documentation paths, they are attached later\n"
    ),
])


EXECUTOR_PROMPT = ChatPromptTemplate.from_messages([
    ("system", "You are an amis configuration expert. You answer with a single amis JSON object."),
    (
        "human",
        "Task description: {description}\n"
        "Task type: {task_type}\n\n"
        "Overall user requirement: {requirement}\n"
        "{existing_section}"
        "{context_section}"
        "{data_section}\n"
        "Rules:\n"
        "1. Return ONLY the JSON object, no other text\n"
        "2. Include required properties such as type and name\n"
        "3. Follow the official amis conventions\n"
        "4. Form items must carry a label\n"
    ),
])


FIXER_PROMPT = ChatPromptTemplate.from_messages([
    ("system", "You are a JSON repair expert for amis configurations."),
    (
        "human",
        "A previous step produced an invalid amis configuration.\n\n"
        "Task description: {description}\n"
        "Error: {error_message}\n"
        "Original output:\n{raw_result}\n"
        "{data_section}\n"
        "Rules:\n"
        "1. Correct the problem named in the error\n"
        "2. Keep the configuration valid amis\n"
        "3. Return ONLY the repaired JSON object, no explanation\n"
    ),
])


COMPOSER_PROMPT = ChatPromptTemplate.from_messages([
    ("system", "You are an amis configuration composer."),
    (
        "human",
        "Combine the components below into one complete amis page configuration.\n\n"
        "User requirement: {requirement}\n\n"
        "Generated components:\n{components}\n"
        "{data_section}\n"
        "Rules:\n"
        "1. Combine every component into one page configuration\n"
        "2. Form items go inside the body of a form\n"
        "3. A page has type \"page\"\n"
        "4. The result must be directly usable by amis\n"
        "5. Add API configuration where it is needed\n"
        "6. Return ONLY the JSON object, no other text\n"
    ),
])


DOCS_ASSOCIATION_PROMPT = ChatPromptTemplate.from_messages([
    ("system", "You are an amis documentation expert."),
    (
        "human",
        "Pick the documents most relevant to this task from the list.\n\n"
        "Task description: {description}\n"
        "Task type: {task_type}\n\n"
        "Documents:\n{documents}\n\n"
        "Return the 1-3 most relevant paths.\n"
        "Rules:\n"
        "1. Return ONLY a JSON array of strings, no markdown or other text\n"
        "2. Paths must match the list exactly\n"
    ),
])


INPUT_PROCESSOR_PROMPT = ChatPromptTemplate.from_messages([
    ("system", "You are a precise data extraction assistant. You answer only with JSON."),
    (
        "human",
        "Separate the user's instruction from the data it operates on.\n\n"
        "1. Identify which part is the instruction and which part is data\n"
        "2. Extract the data. Loose text becomes a JSON array of records; tables become JSON. "
        "Never change values, only fix formatting\n"
        "3. Describe the data with a field schema\n\n"
        "Answer with an object:\n"
        "{{\"requirement\": string, \"isDataPresent\": boolean, \"dataContent\": any, "
        "\"dataMeta\": {{\"type\": string, \"description\": string, \"schema\": object}}}}\n\n"
        "Example input: Build a bar chart from these sales: January 100, February 200\n"
        "Example output: {{\"requirement\": \"Build a bar chart from sales data\", \"isDataPresent\": true, "
        "\"dataContent\": [{{\"month\": \"January\", \"value\": 100}}, {{\"month\": \"February\", \"value\": 200}}], "
        "\"dataMeta\": {{\"type\": \"json\", \"description\": \"Monthly sales\", "
        "\"schema\": {{\"month\": \"string\", \"value\": \"number\"}}}}}}\n\n"
        "User input:\n{raw_input}\n"
    ),
])


DATA_SAMPLE_RECORDS = 3


def data_binding_section(structured_data, dependencies: Optional[List[str]] = None) -> str:
    """Render the structured-data instructions shared by several prompts ("" without data)"""
    if structured_data is None:
        return ""

    content = structured_data.content
    if isinstance(content, list):
        content = content[:DATA_SAMPLE_RECORDS]

    lines = ["", "Structured data available to the page"]
    if structured_data.description:
        lines[-1] += f" ({structured_data.description})"
    lines[-1] += ":"
    lines.append(json.dumps(content, ensure_ascii=False, indent=2))

    fields = structured_data.field_names()
    if fields:
        lines.append(f"Fields: {', '.join(fields)}")
    lines.append("Bind data with ${field} expressions instead of hard-coding values.")
    if dependencies:
        lines.append(f"The output MUST reference these fields: {', '.join(dependencies)}")
    return "\n".join(lines) + "\n"


__all__ = [
    "data_binding_section",
    "PLANNER_PROMPT",
    "EXECUTOR_PROMPT",
    "FIXER_PROMPT",
    "COMPOSER_PROMPT",
    "DOCS_ASSOCIATION_PROMPT",
    "INPUT_PROCESSOR_PROMPT",
]
