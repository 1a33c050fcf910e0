"""In-guest file and process commands backed by the credential cache."""

from __future__ import annotations

import getpass
import os

import scriptconfig as scfg

from ..errors import UserInputError
from ..kinds import VMS
from ..util import parse_octal
from ..vm import GuestOperations, posix_attributes
from ._common import (
    _BaseCommand,
    _as_list,
    _conflicts,
    _int_or_none,
    _require,
    _str,
    current_config,
    current_session,
    log,
)


class _GuestCommand(_BaseCommand):
    """Options shared by the guest commands."""

    vm = scfg.Value('', position=1, help='VM (positional).')
    username = scfg.Value(None, help='Username in guest (default from config, else root).')


def _username(args) -> str:
    name = _str(args.username)
    if name:
        return name
    return current_config(args.config).guest.username or 'root'


def _target(args):
    session = current_session(args.config)
    node = session.lookup_single(_require(_str(args.vm), 'VM path required'), VMS)
    return session, node


def _guest(args) -> GuestOperations:
    """Guest operations for the VM in ``args`` with its cached credential."""
    session, node = _target(args)
    auth = session.credentials.get(node, _username(args))
    return GuestOperations(session.connection, node.obj, auth)


def _attributes(args):
    return posix_attributes(
        group_id=_int_or_none(args.group_id),
        owner_id=_int_or_none(args.owner_id),
        permissions=parse_octal(_str(args.permissions) or None),
    )


class AuthenticateCLI(_GuestCommand):
    """Authenticate within guest."""

    password = scfg.Value('', help='Password in guest (prompted when empty).')
    interactive_session = scfg.Value(
        False, isflag=True, help='Allow command to interact with desktop.'
    )

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session, node = _target(args)
        password = _str(args.password) or getpass.getpass('password: ')
        session.credentials.authenticate(
            session.connection,
            node,
            _username(args),
            password,
            interactive_session=bool(args.interactive_session),
        )
        return 0


class CheckAuthCLI(_GuestCommand):
    """Check credentials."""

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session, node = _target(args)
        session.credentials.check(session.connection, node, _username(args))
        return 0


class ListAuthCLI(_BaseCommand):
    """List available credentials."""

    vm = scfg.Value('', position=1, help='Optional VM (positional).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session = current_session(args.config)
        vm = session.lookup_single(_str(args.vm), VMS) if _str(args.vm) else None
        listing = session.credentials.listing(vm)
        if not listing:
            print('No credentials available.')
            return 0
        for node, users in listing:
            print(node.path_str)
            for user in users:
                print(f'  {user}')
        return 0


class ClearAuthCLI(_GuestCommand):
    """Clear credentials."""

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        session, node = _target(args)
        if not session.credentials.clear(node, _username(args)):
            log.debug('No credential to clear for {}', node.path_str)
        return 0


class ChmodCLI(_GuestCommand):
    """Change file attributes."""

    guest_path = scfg.Value('', help='Path in guest to change ownership of.')
    group_id = scfg.Value(None, help='Group ID of file.')
    owner_id = scfg.Value(None, help='Owner ID of file.')
    permissions = scfg.Value(None, help='Permissions of file (octal).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        path = _require(_str(args.guest_path), '--guest_path is required')
        attributes = _attributes(args)
        _guest(args).chmod(path, attributes)
        return 0


class MktmpdirCLI(_GuestCommand):
    """Make temporary directory in guest."""

    guest_path = scfg.Value('', help='Path in guest to create temporary directory in.')
    prefix = scfg.Value('', help='Prefix of temporary directory.')
    suffix = scfg.Value('', help='Suffix of temporary directory.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        prefix = _require(_str(args.prefix), '--prefix is required')
        suffix = _require(_str(args.suffix), '--suffix is required')
        print(_guest(args).mktmpdir(prefix, suffix, _str(args.guest_path) or None))
        return 0


class MktmpfileCLI(_GuestCommand):
    """Make temporary file in guest."""

    guest_path = scfg.Value('', help='Path in guest to create temporary file in.')
    prefix = scfg.Value('', help='Prefix of temporary file.')
    suffix = scfg.Value('', help='Suffix of temporary file.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        prefix = _require(_str(args.prefix), '--prefix is required')
        suffix = _require(_str(args.suffix), '--suffix is required')
        print(_guest(args).mktmpfile(prefix, suffix, _str(args.guest_path) or None))
        return 0


class RmdirCLI(_GuestCommand):
    """Delete directory in guest."""

    guest_path = scfg.Value('', help='Path of directory in guest to delete.')
    recursive = scfg.Value(False, isflag=True, help='Delete all subdirectories.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        path = _require(_str(args.guest_path), '--guest_path is required')
        _guest(args).rmdir(path, bool(args.recursive))
        return 0


class RmfileCLI(_GuestCommand):
    """Delete file in guest."""

    guest_path = scfg.Value('', help='Path of file in guest to delete.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        _guest(args).rmfile(_require(_str(args.guest_path), '--guest_path is required'))
        return 0


class DownloadFileCLI(_GuestCommand):
    """Download file from guest."""

    guest_path = scfg.Value('', help='Path in guest to download from.')
    local_path = scfg.Value('', help='Local file to download to.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        path = _require(_str(args.guest_path), '--guest_path is required')
        local = _require(_str(args.local_path), '--local_path is required')
        nbytes = _guest(args).download_file(path, local)
        log.debug('Downloaded {} bytes to {}', nbytes, local)
        return 0


class UploadFileCLI(_GuestCommand):
    """Upload file to guest."""

    guest_path = scfg.Value('', help='Path in guest to upload to.')
    local_path = scfg.Value('', help='Local file to upload.')
    overwrite = scfg.Value(False, isflag=True, help='Overwrite file.')
    group_id = scfg.Value(None, help='Group ID of file.')
    owner_id = scfg.Value(None, help='Owner ID of file.')
    permissions = scfg.Value(None, help='Permissions of file (octal).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        path = _require(_str(args.guest_path), '--guest_path is required')
        local = _require(_str(args.local_path), '--local_path is required')
        if not os.path.isfile(local):
            raise UserInputError(f'File {local} does not exist or is not a file.')
        attributes = _attributes(args)
        _guest(args).upload_file(
            local, path, attributes=attributes, overwrite=bool(args.overwrite)
        )
        return 0


class UploadDirectoryCLI(_GuestCommand):
    """Upload directory to guest."""

    guest_path = scfg.Value('', help='Path in guest to upload to.')
    local_path = scfg.Value('', help='Local directory to upload.')
    exclude = scfg.Value(None, help='Exclude files/directories by regex (default from config).')
    create_parent_directories = scfg.Value(
        False, isflag=True, help='Create parent directories.'
    )
    overwrite = scfg.Value(False, isflag=True, help='Overwrite files/directories.')
    group_id = scfg.Value(None, help='Group ID of files.')
    owner_id = scfg.Value(None, help='Owner ID of files.')
    permissions = scfg.Value(None, help='Permissions of files (octal).')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        path = _require(_str(args.guest_path), '--guest_path is required')
        local = _require(_str(args.local_path), '--local_path is required')
        exclude = _str(args.exclude) or current_config(args.config).guest.exclude
        attributes = _attributes(args)
        count = _guest(args).upload_directory(
            local,
            path,
            exclude=exclude,
            attributes=attributes,
            overwrite=bool(args.overwrite),
            create_parents=bool(args.create_parent_directories),
        )
        log.debug('Uploaded {} files', count)
        return 0


class LsGuestCLI(_GuestCommand):
    """List files in guest."""

    guest_path = scfg.Value('', help='Path in guest to get directory listing.')
    index = scfg.Value(None, help='Which to start the list with.')
    match_pattern = scfg.Value(None, help='Filename filter (regular expression).')
    max_results = scfg.Value(None, help='Maximum number of results.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        path = _require(_str(args.guest_path), '--guest_path is required')
        listing = _guest(args).ls(
            path,
            index=_int_or_none(args.index),
            max_results=_int_or_none(args.max_results),
            match_pattern=_str(args.match_pattern) or None,
        )
        for info in listing.files or []:
            print(info.path)
        if listing.remaining:
            print(f'Remaining: {listing.remaining}')
        return 0


class MkdirCLI(_GuestCommand):
    """Make directory in guest."""

    guest_path = scfg.Value('', help='Path of directory in guest to create.')
    create_parent_directories = scfg.Value(
        False, isflag=True, help='Create parent directories.'
    )

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        path = _require(_str(args.guest_path), '--guest_path is required')
        _guest(args).mkdir(path, bool(args.create_parent_directories))
        return 0


class MvdirCLI(_GuestCommand):
    """Move directory in guest."""

    src_guest_path = scfg.Value('', help='Path in guest to move from.')
    dst_guest_path = scfg.Value('', help='Path in guest to move to.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        src = _require(_str(args.src_guest_path), '--src_guest_path is required')
        dst = _require(_str(args.dst_guest_path), '--dst_guest_path is required')
        _guest(args).mvdir(src, dst)
        return 0


class MvfileCLI(_GuestCommand):
    """Move file in guest."""

    src_guest_path = scfg.Value('', help='Path in guest to move from.')
    dst_guest_path = scfg.Value('', help='Path in guest to move to.')
    no_overwrite = scfg.Value(False, isflag=True, help='Fail if the destination exists.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        src = _require(_str(args.src_guest_path), '--src_guest_path is required')
        dst = _require(_str(args.dst_guest_path), '--dst_guest_path is required')
        _guest(args).mvfile(src, dst, overwrite=not args.no_overwrite)
        return 0


class StartProgramCLI(_GuestCommand):
    """
    Run program in guest.

    Without ``--background`` this waits for the process to exit, polling
    every ``--delay`` seconds, and fails if the exit code is non-zero.
    """

    program_path = scfg.Value('', help='Path to program in guest.')
    arguments = scfg.Value('', help='Arguments of command.')
    background = scfg.Value(False, isflag=True, help="Don't wait for process to finish.")
    delay = scfg.Value(None, help='Interval in seconds (default 5.0).')
    timeout = scfg.Value(None, help='Timeout in seconds.')
    env = scfg.Value([], nargs='*', help='Environment variable(s) to set (e.g. VAR=value).')
    working_directory = scfg.Value(None, help='Working directory of the program to run.')

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        _conflicts(args, 'background', 'timeout')
        _conflicts(args, 'background', 'delay')
        program = _require(_str(args.program_path), '--program_path is required')
        timeout = _int_or_none(args.timeout)
        try:
            delay = float(args.delay) if args.delay not in (None, '') else None
        except (TypeError, ValueError):
            raise UserInputError(f'Expected a number for --delay, got {args.delay!r}') from None
        if delay is None:
            delay = current_config(args.config).guest.program_delay
        env = _as_list(args.env)
        for item in env:
            if '=' not in item:
                raise UserInputError(f'Environment variable must look like VAR=value: {item!r}')
        guest = _guest(args)
        pid = guest.start_program(
            program,
            _str(args.arguments),
            env=env,
            working_directory=_str(args.working_directory) or None,
        )
        if args.background:
            print(pid)
            return 0
        guest.wait_for_program(pid, delay=delay, timeout=timeout)
        return 0


class VMGuestModalCLI(scfg.ModalCLI):
    """In-guest file and process operations."""

    authenticate = AuthenticateCLI
    check_auth = CheckAuthCLI
    list_auth = ListAuthCLI
    clear_auth = ClearAuthCLI
    chmod = ChmodCLI
    mktmpdir = MktmpdirCLI
    mktmpfile = MktmpfileCLI
    rmdir = RmdirCLI
    rmfile = RmfileCLI
    download_file = DownloadFileCLI
    upload_file = UploadFileCLI
    upload_directory = UploadDirectoryCLI
    ls_guest = LsGuestCLI
    mkdir = MkdirCLI
    mvdir = MvdirCLI
    mvfile = MvfileCLI
    start_program = StartProgramCLI
