"""LLM boundary

client.py: CoachClient, the single Anthropic Messages API wrapper
prompts.py: System, pattern, roast and task-refinement prompts
contracts.py: Validation of model JSON output
function_tools.py: Tool declarations for chat
task_parser.py: Local (non-LLM) plan parser
coach.py: Pattern analysis, weekly roast, task refinement and chat flows
"""
