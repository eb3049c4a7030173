"""User-facing help texts: keyboard shortcuts and config bootstrapping."""

from __future__ import annotations

from pathlib import Path

KEYBINDINGS = """\
Keyboard shortcuts

  Enter        Send the prompt (Ctrl-D when multiline_insertions is on)
  Escape       Stop the response that is streaming in
  Up           Recall the previous prompt into an empty input line
  Ctrl-R       Send the previous prompt again
  Ctrl-C       Quit (press twice when double_ctrlc is on)

Every prompt is sent on its own, without earlier questions or answers.

Commands

  /help        Show this text
  /clear       Clear the screen
  /config      Show the active configuration
  /retry       Send the previous prompt again
"""

EXAMPLE_TOML = """\
api_key = "<YOUR SECRET API KEY>"
model = "gpt-4o-mini"
max_tokens = 2048
temperature = 0.8"""


def missing_config_text(path: Path) -> str:
    return f"""
Could not find the file `{path.name}`. To fix this, create {path}.

For example, use the following content (the text between the ```):

```
{EXAMPLE_TOML}
```

Here, replace `<YOUR SECRET API KEY>` with your API key, which you can
request via https://platform.openai.com/account/api-keys. To talk to
Anthropic instead, add `provider = "anthropic"` and use an Anthropic key.

`max_tokens` sets the maximum amount of tokens that the server can answer
with. Longer answers will be truncated.

`temperature` sets the sampling temperature. Higher values make the model
take more risks; 0 gives the most deterministic answer.
"""
