"""Interceptors for shells that are already running and cannot be restarted by the manager."""

from .base import SetupScriptInterceptor


class ExistingTerminalInterceptor(SetupScriptInterceptor):
    id = "existing-terminal"
    name = "Existing terminal"
    description = "Intercept all HTTP(S) traffic from an already open bash or zsh session"
    required_binaries = (("bash", "zsh"), ("curl",))

    def setup_command(self, setup_url: str) -> str:
        return f"eval \"$(curl -sS --noproxy '*' {setup_url})\""


class ExistingFishInterceptor(SetupScriptInterceptor):
    id = "existing-fish"
    name = "Existing fish shell"
    description = "Intercept all HTTP(S) traffic from an already open fish session"
    required_binaries = (("fish",), ("curl",))

    def setup_command(self, setup_url: str) -> str:
        return f"curl -sS --noproxy '*' {setup_url} | source"


class ExistingPowerShellInterceptor(SetupScriptInterceptor):
    id = "existing-powershell"
    name = "Existing PowerShell"
    description = "Intercept all HTTP(S) traffic from an already open PowerShell session"
    required_binaries = (("pwsh", "powershell"),)

    def setup_command(self, setup_url: str) -> str:
        return f"Invoke-Expression (Invoke-WebRequest -UseBasicParsing {setup_url}).Content"
