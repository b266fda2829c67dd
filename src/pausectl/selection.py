"""Resolve a selector into the processes to pause or resume."""

import fnmatch
import os
from dataclasses import dataclass

import psutil

from pausectl.backend import OsBackend
from pausectl.errors import OsCallError, ResolutionError, SelfTargetError
from pausectl.log import get_logger
from pausectl.models import TargetProcess

logger = get_logger("pausectl.selection")

# Processes that died mid-enumeration, are protected, or are zombies
_SKIP = (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess)


@dataclass(slots=True, frozen=True)
class Selector:
    """
    Which processes an invocation targets.

    Exactly one of ids, names or session_ids drives the selection. When
    names are given, session_ids (if any) filters the matches instead;
    without it the matches are limited to the caller's session unless
    all_sessions is set.
    """

    ids: tuple[int, ...] = ()
    names: tuple[str, ...] = ()
    session_ids: tuple[int, ...] = ()
    all_sessions: bool = False

    def __post_init__(self) -> None:
        if self.ids and (self.names or self.session_ids):
            raise ValueError("ids cannot be combined with names or session ids")
        if not (self.ids or self.names or self.session_ids):
            raise ValueError("a selector needs ids, names or session ids")
        if self.all_sessions and self.session_ids:
            raise ValueError("all_sessions cannot be combined with session ids")


def name_matches(name: str, patterns: tuple[str, ...]) -> bool:
    """Case-insensitive wildcard match; a trailing .exe is optional on either side."""
    candidate = name.lower()
    stem = candidate[:-4] if candidate.endswith(".exe") else candidate
    for pattern in patterns:
        pattern = pattern.lower()
        if fnmatch.fnmatchcase(candidate, pattern) or fnmatch.fnmatchcase(stem, pattern):
            return True
    return False


class ProcessResolver:
    """Turns a Selector into TargetProcess snapshots using psutil."""

    def __init__(self, backend: OsBackend, own_pid: int | None = None) -> None:
        self._backend = backend
        self._own_pid = os.getpid() if own_pid is None else own_pid

    def resolve(self, selector: Selector) -> list[TargetProcess]:
        """
        Resolve the selector.

        The caller's own process is never part of the result. Processes that
        exit or deny access while being inspected are skipped.

        Raises:
            SelfTargetError: The only requested id was the caller itself.
            ResolutionError: Nothing matched.
        """
        if selector.ids:
            targets = self._by_ids(selector.ids)
        elif selector.names:
            targets = self._by_names(selector)
        else:
            targets = self._by_sessions(selector.session_ids)

        if not targets:
            raise ResolutionError(f"no matching processes for {self._describe(selector)}")

        logger.debug("selector_resolved", pids=[target.pid for target in targets])
        return targets

    def _by_ids(self, ids: tuple[int, ...]) -> list[TargetProcess]:
        wanted = list(dict.fromkeys(ids))
        if self._own_pid in wanted:
            logger.warning("skipping_own_process", pid=self._own_pid)
            wanted.remove(self._own_pid)
            if not wanted:
                raise SelfTargetError()

        targets: list[TargetProcess] = []
        for pid in wanted:
            try:
                proc = psutil.Process(pid)
                target = self._snapshot(proc, proc.name())
            except _SKIP:
                logger.warning("process_not_available", pid=pid)
                continue
            if target is not None:
                targets.append(target)
        return targets

    def _by_names(self, selector: Selector) -> list[TargetProcess]:
        if selector.session_ids:
            sessions = set(selector.session_ids)
        elif selector.all_sessions:
            sessions = None
        else:
            sessions = {self._backend.current_session_id()}

        targets: list[TargetProcess] = []
        for proc in psutil.process_iter(attrs=["pid", "name"]):
            info = proc.info
            pid = info.get("pid")
            name = info.get("name") or ""
            if pid == self._own_pid or not name_matches(name, selector.names):
                continue
            try:
                session = self._backend.session_id(pid)
            except OsCallError:
                continue
            if sessions is not None and session not in sessions:
                continue
            try:
                target = self._snapshot(proc, name, session)
            except _SKIP:
                continue
            if target is not None:
                targets.append(target)
        return targets

    def _by_sessions(self, session_ids: tuple[int, ...]) -> list[TargetProcess]:
        sessions = set(session_ids)
        targets: list[TargetProcess] = []
        for proc in psutil.process_iter(attrs=["pid", "name"]):
            info = proc.info
            pid = info.get("pid")
            if pid == self._own_pid:
                continue
            try:
                session = self._backend.session_id(pid)
            except OsCallError:
                continue
            if session not in sessions:
                continue
            try:
                target = self._snapshot(proc, info.get("name") or "", session)
            except _SKIP:
                continue
            if target is not None:
                targets.append(target)
        return targets

    def _snapshot(
        self,
        proc: psutil.Process,
        name: str,
        session: int | None = None,
    ) -> TargetProcess | None:
        """Capture session, threads and main window; None if the session lookup fails."""
        if session is None:
            try:
                session = self._backend.session_id(proc.pid)
            except OsCallError as exc:
                logger.debug("session_lookup_failed", pid=proc.pid, error_code=exc.winerror)
                return None

        thread_ids = tuple(thread.id for thread in proc.threads())

        try:
            main_window = self._backend.main_window(proc.pid)
        except OsCallError:
            main_window = 0

        return TargetProcess(
            pid=proc.pid,
            name=name,
            session_id=session,
            thread_ids=thread_ids,
            main_window=main_window,
        )

    @staticmethod
    def _describe(selector: Selector) -> str:
        if selector.ids:
            return "id " + ",".join(str(pid) for pid in selector.ids)
        if selector.names:
            text = "name " + ",".join(selector.names)
            if selector.session_ids:
                text += " in session " + ",".join(str(s) for s in selector.session_ids)
            return text
        return "session " + ",".join(str(s) for s in selector.session_ids)
