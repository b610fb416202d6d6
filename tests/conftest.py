"""Shared fixtures for stepflow tests."""

import pytest

from stepflow.interpreter import Interpreter
from stepflow.parser import parse
from stepflow.validator import Validator


@pytest.fixture
def validator():
    return Validator()


@pytest.fixture
def interpreter():
    return Interpreter()


# ---------------------------------------------------------------------------
# Sample DSL sources
# ---------------------------------------------------------------------------

BASIC_WORKFLOW = '''
workflow "MyFlow" {
  step 1: fetch("https://api.com")
  step 2: summarize(step 1)
  step 3: send_email("user@example.com", step 2)
}
'''

COMMENTED_WORKFLOW = '''
// Daily data pipeline
workflow "DataPipeline" {
  /* fetch, then narrow down
     and persist */
  step 1: fetch("https://data.com/api")
  step 2: filter(step 1, "active")   // keep active rows
  step 3: store(step 2, "database")
}
'''

VARIABLES_WORKFLOW = '''
let greeting = "Hello, "
let user = "team"
const retries = 3
workflow "Greeting" {
  step 1: print(greeting + user)
  step 2: log("retries: " + retries)
}
'''

CONDITIONAL_WORKFLOW = '''
workflow "Alerting" {
  step 1: fetch("https://api.com/metrics")
  if (step 1.status == "success") {
    step 2: notify("ops@example.com", "metrics fetched")
  } else {
    step 3: log("fetch failed")
  }
  step 4: store(step 1, "archive")
}
'''

CIRCULAR_WORKFLOW = '''
workflow "Loop" {
  step 1: fetch("https://api.com")
  step 2: summarize(step 3)
  step 3: send_email("a@b.com", step 2)
}
'''


@pytest.fixture
def basic_ast():
    return parse(BASIC_WORKFLOW)


@pytest.fixture
def conditional_ast():
    return parse(CONDITIONAL_WORKFLOW)


@pytest.fixture
def variables_ast():
    return parse(VARIABLES_WORKFLOW)


@pytest.fixture
def commented_ast():
    return parse(COMMENTED_WORKFLOW)


@pytest.fixture
def circular_ast():
    return parse(CIRCULAR_WORKFLOW)


@pytest.fixture
def sources():
    return {
        "basic": BASIC_WORKFLOW,
        "commented": COMMENTED_WORKFLOW,
        "variables": VARIABLES_WORKFLOW,
        "conditional": CONDITIONAL_WORKFLOW,
        "circular": CIRCULAR_WORKFLOW,
    }
