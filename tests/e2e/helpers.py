"""Drivers shared by the end-to-end scenarios."""
from graph.state import StepAction
from tests.fakes import evaluation_json

DIFFICULTY_ORDER = ["beginner", "intermediate", "advanced"]


def scripted_replies(scores, *, reasoning="Adjusting the next question.", feedback="Nice effort.", summary="Solid session."):
    """Reply callable that scores evaluation prompts from ``scores`` in order."""
    remaining = list(scores)

    def reply(prompt):
        if "EVALUATION CRITERIA" in prompt:
            value = remaining.pop(0)
            return evaluation_json(value, value, value, value)
        if "explain your reasoning" in prompt:
            return reasoning
        if "personalized feedback" in prompt:
            return feedback
        if "interview summary" in prompt:
            return summary
        return "Noted."

    return reply


def begin(machine, **config):
    state = machine.start(config)
    state = machine.step(state)
    return machine.step(state, StepAction(state="asking_questions"))


def answer_and_evaluate(machine, state, text="My answer"):
    state = machine.add_answer(state, state.ui.current_question_id, text)
    return machine.step(state, StepAction(state="evaluating"))


def run_interview(machine, answers=None, **config):
    """Drive a full session to ``completed`` and return every intermediate state."""
    states = [begin(machine, **config)]
    state = states[0]
    index = 0
    while state.current_state != "summary":
        if state.current_state == "asking_questions" and state.current_question() is None:
            state = machine.step(state)
            states.append(state)
            continue
        text = answers[index] if answers else f"Answer {index + 1}"
        index += 1
        state = answer_and_evaluate(machine, state, text)
        states.append(state)
        if state.current_state == "error":
            raise AssertionError(state.ui.error_message)
    state = machine.step(state)
    states.append(state)
    return states
