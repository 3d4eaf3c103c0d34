"""
Run a FreeAgent session from the command line
=============================================

WHAT THIS SHOWS:
- Loading the prompt template from examples/prompt_template.json
- Driving a session with SessionRunner until the agent completes or asks for help
- Answering assistance requests interactively
- Saving every iteration to ./sessions for later inspection

RUN:
    python examples/run_session.py "Find today's top science headline and summarize it"

Needs a provider key in the environment (GEMINI_API_KEY, ANTHROPIC_API_KEY or
XAI_API_KEY) and, for server-side tools, FREEAGENT_TOOLS_URL.
"""

import asyncio
import sys
from pathlib import Path

from freeagent import AgentSession, Config, SessionRunner
from freeagent.persistence import JsonPersistence
from freeagent.prompts import PromptLibrary, PromptTemplate
from freeagent.schemas import SessionStatus

TEMPLATE_PATH = Path(__file__).parent / "prompt_template.json"


async def main(task: str) -> None:
    Config.validate()
    print(Config.display())

    library = PromptLibrary()
    library.register(PromptTemplate.from_file(TEMPLATE_PATH))
    template = library.get("default")
    session = AgentSession(prompt=task, prompt_sections=template.sorted_sections())

    persistence = JsonPersistence()
    await persistence.initialize()
    runner = SessionRunner(persistence=persistence)

    while True:
        await runner.run(session)

        if session.status != SessionStatus.NEEDS_ASSISTANCE:
            break

        # The agent is blocked on the user; collect an answer and continue
        request = session.assistance_request
        print(f"\nAgent asks: {request.question}")
        if request.choices:
            for index, choice in enumerate(request.choices, start=1):
                print(f"  {index}. {choice}")
        answer = input("> ").strip()
        if request.choices and answer.isdigit() and 1 <= int(answer) <= len(request.choices):
            SessionRunner.answer_assistance(session, selected_choice=request.choices[int(answer) - 1])
        else:
            SessionRunner.answer_assistance(session, answer)

    print(f"\nSession {session.id}: {session.status.value} after {session.iteration} iteration(s)")
    if session.final_report is not None:
        print(f"\nSummary: {session.final_report.summary}")
        for finding in session.final_report.key_findings:
            print(f"  - {finding}")
    elif session.error:
        print(f"\nError: {session.error}")

    await persistence.close()


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print('Usage: python examples/run_session.py "<task>"')
        sys.exit(1)
    asyncio.run(main(" ".join(sys.argv[1:])))
