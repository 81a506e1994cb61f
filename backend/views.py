"""
Terminal views and navigation.

Each page renders through a Console and returns the path to show next (None
quits). Every route except /login is protected: it waits for the saved
session check to finish, then redirects to /login when nobody is signed in.
"""
import getpass
import logging
import time
from typing import Callable, Optional

import config
from api_client import ApiClient, ApiError, AuthError, ValidationError
from identity import IdentityProvider
from import_names import NameFileError, read_name_file
from models import Analytics, Gender
from swipe_flow import Direction, SwipeMachine, SwipeState

logger = logging.getLogger("name_picker.views")

LOGIN = "/login"
HOME = "/"

LIKE_WORDS = {"like", "y", "yes", "r", "right"}
PASS_WORDS = {"pass", "n", "no", "l", "left"}
BACK_WORDS = {"b", "back"}
QUIT_WORDS = {"q", "quit", "exit"}


class Console:
    """Line-based I/O. Tests swap in scripted input and captured output."""

    def __init__(self, input_fn: Callable[[str], str] = input, output_fn: Callable[[str], None] = print,
                 secret_fn: Callable[[str], str] = None, clock: Callable[[], float] = time.monotonic) -> None:
        self._input = input_fn
        self._output = output_fn
        self._secret = secret_fn or (getpass.getpass if input_fn is input else input_fn)
        self.clock = clock

    def say(self, text: str = "") -> None:
        self._output(text)

    def ask(self, prompt: str) -> str:
        return self._input(prompt).strip()

    def ask_secret(self, prompt: str) -> str:
        return self._secret(prompt)


class Notice:
    """An inline message that disappears after NOTICE_SECONDS."""

    def __init__(self, text: str, is_error: bool, shown_at: float, ttl: float = config.NOTICE_SECONDS) -> None:
        self.text = text
        self.is_error = is_error
        self.shown_at = shown_at
        self.ttl = ttl

    def visible(self, now: float) -> bool:
        return now - self.shown_at < self.ttl

    def __str__(self):
        return f"{'!!' if self.is_error else '**'} {self.text}"


class Page:
    title = ""

    def __init__(self, app: "App") -> None:
        self.app = app
        self.console = app.console
        self.api = app.api
        self.identity = app.identity.current

    def header(self) -> None:
        self.console.say("")
        self.console.say(f"== {self.title} ==")

    async def show(self) -> Optional[str]:
        raise NotImplementedError


class LoginPage(Page):
    title = "Name Picker"

    async def show(self) -> Optional[str]:
        if self.app.identity.is_authenticated:
            return HOME
        self.header()
        self.console.say("Choose your perfect last name together. Sign in to start swiping.")
        email = self.console.ask("Email (q to quit): ")
        if not email or email.lower() in QUIT_WORDS:
            return None
        password = self.console.ask_secret("Password: ")
        try:
            await self.app.identity.login(email, password)
        except AuthError:
            self.console.say("Invalid email or password.")
            return LOGIN
        except ApiError as exc:
            logger.error("Sign-in failed: %s", exc)
            self.console.say("Could not reach the server. Please try again.")
            return LOGIN
        return HOME


class HomePage(Page):
    title = "Home"
    MENU = [
        ("1", "Start Swiping", "/swipe"),
        ("2", "View Matches", "/matches"),
        ("3", "Analytics", "/analytics"),
        ("4", "Upload Names", "/upload"),
    ]

    async def show(self) -> Optional[str]:
        self.header()
        self.console.say(f"Welcome, {self.identity.display_name}!")
        for key, label, _ in self.MENU:
            self.console.say(f"  {key}. {label}")
        self.console.say("  5. Logout")
        self.console.say("  q. Quit")
        choice = self.console.ask("> ").lower()
        if choice in QUIT_WORDS:
            return None
        if choice in ("5", "logout"):
            await self.app.identity.logout()
            return LOGIN
        for key, label, path in self.MENU:
            if choice in (key, path, label.lower()):
                return path
        return HOME


class SwipePage(Page):
    title = "Swipe Names"

    def _on_change(self, machine: SwipeMachine) -> None:
        if machine.state == SwipeState.match_celebration and machine.last_result:
            self.console.say("")
            self.console.say("*** IT'S A MATCH! ***")
            self.console.say(f"    {machine.last_result.name.name}")

    def _render_card(self, machine: SwipeMachine) -> None:
        name = machine.candidate
        self.console.say("")
        self.console.say(f"Names Reviewed: {machine.swipe_count}")
        self.console.say(f"  {name.name}")
        if name.origin:
            self.console.say(f"  Origin: {name.origin}")
        if name.meaning:
            self.console.say(f"  Meaning: {name.meaning}")

    async def show(self) -> Optional[str]:
        self.header()
        machine = self.app.make_machine(self.identity, on_change=self._on_change)
        self.console.say("Loading next name...")
        await machine.start()
        while True:
            if machine.state == SwipeState.exhausted:
                self.console.say("All done for now!")
                self.console.say("You've reviewed all available names. Check back later for more options!")
                self.console.ask("Press Enter to go back ")
                return HOME
            self._render_card(machine)
            choice = self.console.ask("[like/pass/back] > ").lower()
            if choice in BACK_WORDS:
                return HOME
            if choice in LIKE_WORDS:
                await machine.swipe(Direction.right)
            elif choice in PASS_WORDS:
                await machine.swipe(Direction.left)
            else:
                self.console.say("Type 'like' or 'pass'.")


class MatchesPage(Page):
    title = "Matches"

    async def show(self) -> Optional[str]:
        self.header()
        try:
            matches = await self.api.get_matches(self.identity.user_id)
        except ApiError as exc:
            logger.error("Failed to load matches: %s", exc)
            self.console.say("Failed to load matches.")
            matches = []
        else:
            if not matches:
                self.console.say("No matches yet. Keep swiping!")
            for match in matches:
                self.console.say(f"  {match.name}  (matched {match.matched_at:%Y-%m-%d})")
        self.console.ask("Press Enter to go back ")
        return HOME


class AnalyticsPage(Page):
    title = "Analytics"

    async def show(self) -> Optional[str]:
        self.header()
        try:
            stats = await self.api.get_analytics(self.identity.user_id)
        except ApiError as exc:
            logger.error("Failed to load analytics: %s", exc)
            stats = Analytics()
        self.console.say("Your Swiping Stats")
        self.console.say(f"  Total Swipes: {stats.total_swipes}")
        self.console.say(f"  Names Liked: {stats.likes}")
        self.console.say(f"  Names Passed: {stats.dislikes}")
        self.console.say(f"  Matches Found: {stats.matches}")
        if stats.total_swipes > 1:
            self.console.say(f"  Average Swipe Time: {stats.average_swipe_time:.1f}s")
        if stats.most_popular_names:
            self.console.say(f"  Most Popular: {', '.join(stats.most_popular_names)}")
        self.console.ask("Press Enter to go back ")
        return HOME


class UploadPage(Page):
    title = "Upload Names"

    def __init__(self, app: "App") -> None:
        super().__init__(app)
        self.notice: Optional[Notice] = None
        self.uploaded = []

    def _notify(self, text: str, is_error: bool = False) -> None:
        self.notice = Notice(text, is_error, self.console.clock())

    def _render(self) -> None:
        self.header()
        if self.notice and self.notice.visible(self.console.clock()):
            self.console.say(str(self.notice))
        else:
            self.notice = None
        if self.uploaded:
            recent = ", ".join(self.uploaded[-20:])
            more = f" (+{len(self.uploaded) - 20} more)" if len(self.uploaded) > 20 else ""
            self.console.say(f"Recently Added Names ({len(self.uploaded)}): {recent}{more}")
        self.console.say("  1. Add Single Name")
        self.console.say("  2. Upload from .txt File")
        self.console.say("  b. Back")

    async def add_single(self) -> None:
        name = self.console.ask("Name: ")
        if not name:
            self._notify("Name cannot be empty.", is_error=True)
            return
        origin = self.console.ask("Origin (optional): ")
        meaning = self.console.ask("Meaning (optional): ")
        gender = self.console.ask("Gender association [neutral/masculine/feminine]: ").lower() or Gender.neutral.value
        try:
            await self.api.add_name(self.identity.user_id, name, origin, meaning, gender)
        except ValidationError as exc:
            self._notify(str(exc), is_error=True)
            return
        except ApiError as exc:
            logger.error("Failed to add name: %s", exc)
            self._notify("Failed to add name. Please try again.", is_error=True)
            return
        self.uploaded.append(name)
        self._notify(f'Successfully added "{name}"!')

    async def upload_file(self) -> None:
        path = self.console.ask("Path to .txt file: ")
        try:
            names = read_name_file(path)
        except NameFileError as exc:
            self._notify(str(exc), is_error=True)
            return
        if not names:
            self._notify("No valid names found in the file.", is_error=True)
            return
        added_ids = await self.api.add_names_from_file(
            self.identity.user_id, names, on_added=lambda name, _id: self.uploaded.append(name))
        if len(added_ids) == len(names):
            self._notify(f"Successfully added {len(added_ids)} names!")
        else:
            self._notify(f"Added {len(added_ids)} out of {len(names)} names. Some may have been duplicates.")

    async def show(self) -> Optional[str]:
        while True:
            self._render()
            choice = self.console.ask("> ").lower()
            if choice in BACK_WORDS:
                return HOME
            if choice == "1":
                await self.add_single()
            elif choice == "2":
                await self.upload_file()


ROUTES = {
    LOGIN: LoginPage,
    HOME: HomePage,
    "/swipe": SwipePage,
    "/matches": MatchesPage,
    "/analytics": AnalyticsPage,
    "/upload": UploadPage,
}
PUBLIC_ROUTES = {LOGIN}


def resolve(path: str) -> str:
    """Unknown paths fall back to the home page."""
    path = "/" + (path or "").strip().strip("/")
    return path if path in ROUTES else HOME


class App:
    def __init__(self, api: ApiClient, identity: IdentityProvider, console: Console = None,
                 machine_factory: Callable[..., SwipeMachine] = None) -> None:
        self.api = api
        self.identity = identity
        self.console = console or Console()
        self._machine_factory = machine_factory or (lambda ident, **kw: SwipeMachine(api, ident, **kw))
        self.path = None

    def make_machine(self, identity, **kwargs) -> SwipeMachine:
        return self._machine_factory(identity, **kwargs)

    async def guard(self, path: str) -> str:
        """Return the path that may actually be shown for *path*."""
        path = resolve(path)
        if self.identity.is_loading:
            self.console.say("Loading...")
            await self.identity.restore()
        if path in PUBLIC_ROUTES:
            return path
        if not self.identity.is_authenticated:
            return LOGIN
        return path

    async def open(self, path: str) -> Optional[str]:
        self.path = await self.guard(path)
        page = ROUTES[self.path](self)
        return await page.show()

    async def run(self, start: str = HOME) -> None:
        path = start
        while path is not None:
            path = await self.open(path)
