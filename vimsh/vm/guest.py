"""File and process operations inside a running guest."""

from __future__ import annotations

import os
import re
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterator

from loguru import logger
from pyVmomi import vim

from .. import transfer
from ..config import DEFAULT_EXCLUDE
from ..credentials import guest_manager
from ..errors import GuestProcessError, UserInputError
from ..wait import Deadline, poll_until

log = logger

# Matches nothing real; the listing only probes whether the directory exists.
PROBE_PATTERN = 'junkJUNKjunk'

GuestFileManager = vim.vm.guest.FileManager


@dataclass(frozen=True)
class UploadStep:
    kind: str  # 'dir' or 'file'
    local_path: Path
    guest_path: str


def posix_attributes(group_id=None, owner_id=None, permissions=None):
    return GuestFileManager.PosixFileAttributes(
        groupId=group_id, ownerId=owner_id, permissions=permissions
    )


def _guest_join(root: str, rel: str) -> str:
    root = root if root.endswith('/') else root + '/'
    return root + rel if rel not in ('', '.') else root


def upload_plan(local_root: str | Path, guest_root: str, exclude: str = DEFAULT_EXCLUDE) -> Iterator[UploadStep]:
    """
    Walk ``local_root`` top-down, yielding directories before their files.

    Any file or directory whose basename matches ``exclude`` is skipped
    together with everything below it.
    """
    local_root = Path(local_root)
    if not local_root.is_dir():
        raise UserInputError(
            f'Directory {local_root} does not exist or is not a directory.'
        )
    pattern = re.compile(exclude) if exclude else None

    def _excluded(name: str) -> bool:
        return pattern is not None and pattern.search(name) is not None

    if _excluded(local_root.name):
        return
    for dirpath, dirnames, filenames in os.walk(local_root, topdown=True):
        dirnames[:] = sorted(d for d in dirnames if not _excluded(d))
        rel = os.path.relpath(dirpath, local_root)
        yield UploadStep('dir', Path(dirpath), _guest_join(guest_root, rel.replace(os.sep, '/')))
        for name in sorted(filenames):
            if _excluded(name):
                continue
            file_rel = name if rel == '.' else f'{rel}/{name}'
            yield UploadStep(
                'file',
                Path(dirpath) / name,
                _guest_join(guest_root, file_rel.replace(os.sep, '/')),
            )


class GuestOperations:
    """
    Guest file and process calls for one VM with one credential.

    ``connection`` supplies the guest operations managers and the server
    host used to rewrite transfer URLs.
    """

    def __init__(self, connection, vm: Any, auth: Any):
        self.connection = connection
        self.vm = vm
        self.auth = auth

    @property
    def files(self) -> Any:
        return guest_manager(self.connection, 'fileManager')

    @property
    def processes(self) -> Any:
        return guest_manager(self.connection, 'processManager')

    def chmod(self, guest_path: str, attributes) -> None:
        self.files.ChangeFileAttributesInGuest(
            vm=self.vm, auth=self.auth, guestFilePath=guest_path, fileAttributes=attributes
        )

    def mktmpdir(self, prefix: str, suffix: str, guest_path: str | None = None) -> str:
        return self.files.CreateTemporaryDirectoryInGuest(
            vm=self.vm, auth=self.auth, prefix=prefix, suffix=suffix, directoryPath=guest_path
        )

    def mktmpfile(self, prefix: str, suffix: str, guest_path: str | None = None) -> str:
        return self.files.CreateTemporaryFileInGuest(
            vm=self.vm, auth=self.auth, prefix=prefix, suffix=suffix, directoryPath=guest_path
        )

    def rmdir(self, guest_path: str, recursive: bool = False) -> None:
        self.files.DeleteDirectoryInGuest(
            vm=self.vm, auth=self.auth, directoryPath=guest_path, recursive=recursive
        )

    def rmfile(self, guest_path: str) -> None:
        self.files.DeleteFileInGuest(vm=self.vm, auth=self.auth, filePath=guest_path)

    def mkdir(self, guest_path: str, create_parents: bool = False) -> None:
        self.files.MakeDirectoryInGuest(
            vm=self.vm, auth=self.auth, directoryPath=guest_path,
            createParentDirectories=create_parents,
        )

    def mvdir(self, src: str, dst: str) -> None:
        self.files.MoveDirectoryInGuest(
            vm=self.vm, auth=self.auth, srcDirectoryPath=src, dstDirectoryPath=dst
        )

    def mvfile(self, src: str, dst: str, overwrite: bool = True) -> None:
        self.files.MoveFileInGuest(
            vm=self.vm, auth=self.auth, srcFilePath=src, dstFilePath=dst, overwrite=overwrite
        )

    def ls(self, guest_path: str, *, index=None, max_results=None, match_pattern=None):
        return self.files.ListFilesInGuest(
            vm=self.vm, auth=self.auth, filePath=guest_path, index=index,
            maxResults=max_results, matchPattern=match_pattern,
        )

    def dir_exists(self, guest_path: str) -> bool:
        try:
            self.ls(guest_path, match_pattern=PROBE_PATTERN)
        except vim.fault.FileNotFound:
            return False
        return True

    def download_file(self, guest_path: str, local_path: str | Path) -> int:
        info = self.files.InitiateFileTransferFromGuest(
            vm=self.vm, auth=self.auth, guestFilePath=guest_path
        )
        return transfer.download(self.connection, info.url, local_path)

    def upload_file(
        self, local_path: str | Path, guest_path: str, *, attributes=None, overwrite: bool = False
    ) -> None:
        local_path = Path(local_path)
        url = self.files.InitiateFileTransferToGuest(
            vm=self.vm,
            auth=self.auth,
            guestFilePath=guest_path,
            fileAttributes=attributes if attributes is not None else posix_attributes(),
            fileSize=local_path.stat().st_size,
            overwrite=overwrite,
        )
        transfer.upload(self.connection, url, local_path)

    def upload_directory(
        self,
        local_path: str | Path,
        guest_path: str,
        *,
        exclude: str = DEFAULT_EXCLUDE,
        attributes=None,
        overwrite: bool = False,
        create_parents: bool = False,
        stream=None,
    ) -> int:
        """Mirror a local tree into the guest; returns the number of files sent."""
        stream = stream if stream is not None else sys.stdout
        count = 0
        for step in upload_plan(local_path, guest_path, exclude):
            if step.kind == 'dir':
                if overwrite and self.dir_exists(step.guest_path):
                    log.debug('Guest directory {} already exists', step.guest_path)
                    continue
                self.mkdir(step.guest_path, create_parents)
            else:
                stream.write(f'Uploading {step.guest_path}\n')
                self.upload_file(
                    step.local_path, step.guest_path, attributes=attributes, overwrite=overwrite
                )
                count += 1
        return count

    def start_program(
        self, program_path: str, arguments: str = '', *, env=None, working_directory=None
    ) -> int:
        spec = vim.vm.guest.ProcessManager.ProgramSpec(
            programPath=program_path,
            arguments=arguments,
            envVariables=list(env or []),
            workingDirectory=working_directory,
        )
        pid = self.processes.StartProgramInGuest(vm=self.vm, auth=self.auth, spec=spec)
        log.debug('Started {} in guest as pid {}', program_path, pid)
        return pid

    def wait_for_program(
        self,
        pid: int,
        *,
        delay: float = 5.0,
        timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> Any:
        """Poll the process list until ``pid`` ends; non-zero exit raises."""

        def _finished():
            procs = self.processes.ListProcessesInGuest(vm=self.vm, auth=self.auth, pids=[pid])
            if not procs:
                raise GuestProcessError(f'Process {pid} is no longer known to the guest')
            proc = procs[0]
            return proc if proc.endTime is not None else None

        proc = poll_until(
            _finished,
            interval=delay,
            deadline=Deadline(timeout, clock=clock),
            what=f'process {pid} to finish',
            sleep=sleep,
        )
        if proc.exitCode != 0:
            raise GuestProcessError(f'Process failed with exit code {proc.exitCode}')
        return proc
