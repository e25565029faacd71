from __future__ import annotations


class ComposerLensError(Exception):
    """
    composer-lens 所有业务异常的基类。
    """


class ProjectNotFound(ComposerLensError):
    """
    项目目录不存在或不是目录。
    """

    def __init__(self, path: str) -> None:
        super().__init__(f"Project directory not found: {path}")
        self.path = path


class ManifestNotFound(ComposerLensError):
    """
    composer.json 不存在或不可读。
    """

    def __init__(self, path: str, reason: str = "composer.json not found in") -> None:
        super().__init__(f"{reason}: {path}")
        self.path = path


class MalformedManifest(ComposerLensError):
    """
    composer.json 不是合法 JSON（或顶层不是对象）。
    """

    def __init__(self, path: str, detail: str) -> None:
        super().__init__(f"Invalid JSON in file: {path} - {detail}")
        self.path = path
        self.detail = detail


class RegistryUnavailable(ComposerLensError):
    """
    访问包仓库失败（网络错误、HTTP 错误或响应无法解码）。
    """

    def __init__(self, message: str, *, package: str | None = None, cause: str | None = None) -> None:
        text = message if cause is None else f"{message}: {cause}"
        super().__init__(text)
        self.package = package
        self.cause = cause


class PackageNotFound(RegistryUnavailable):
    """
    包仓库返回 404。
    """


class VersionNotFound(ComposerLensError):
    """
    包文档中不存在指定版本。
    """

    def __init__(self, package: str, version: str) -> None:
        super().__init__(f"Version '{version}' not found for package '{package}'")
        self.package = package
        self.version = version


class DiagnosticToolFailure(ComposerLensError):
    """
    composer 子进程无法启动、超时，或退出码超出可接受范围。
    """

    def __init__(
        self,
        message: str,
        *,
        command: tuple[str, ...] = (),
        exit_code: int | None = None,
        output: str = "",
    ) -> None:
        super().__init__(message)
        self.command = command
        self.exit_code = exit_code
        self.output = output


class UnknownTool(ComposerLensError):
    """
    请求了未注册的工具名。
    """


class ToolArgumentError(ComposerLensError):
    """
    工具参数未通过 schema 校验。
    """
