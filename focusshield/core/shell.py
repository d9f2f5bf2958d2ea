#!/usr/bin/env python3
import logging

from focusshield.utils.config import DEFAULT_SESSION_MINUTES

BANNER = "FocusShield - Complete Distraction Blocker"

HELP = f"""Commands:
  start <minutes>   Start focus session (default: {DEFAULT_SESSION_MINUTES}, Ctrl-C ends it early)
  stop              End session early
  add <domain>      Add domain to blocklist
  remove <domain>   Remove domain from blocklist
  list              Show current blocklist
  status            Show session status
  test              Apply the block without a timer, to check it works
  help              Show this help
  quit              Exit"""


class CommandShell:
    """Interactive command loop around a FocusSession"""

    prompt = "> "

    def __init__(self, session, input_func=None):
        self.session = session
        self.input_func = input_func or input
        self.commands = {}
        for names, handler in (
            (("start", "s"), self.do_start),
            (("stop", "end"), self.do_stop),
            (("add", "a"), self.do_add),
            (("remove", "rm"), self.do_remove),
            (("list", "ls"), self.do_list),
            (("status",), self.do_status),
            (("test",), self.do_test),
            (("help", "h", "?"), self.do_help),
            (("quit", "q", "exit"), self.do_quit),
        ):
            for name in names:
                self.commands[name] = handler

    def say(self, message=""):
        self.session.say(message)

    def dispatch(self, line):
        """Run one input line; returns False when the loop should exit"""
        parts = line.strip().split(None, 1)
        if not parts:
            return True
        command = parts[0].lower()
        arg = parts[1].strip() if len(parts) > 1 else ""

        handler = self.commands.get(command)
        if handler is None:
            self.say("Unknown command. Type 'help' for options.")
            return True
        logging.debug(f"Command: {command} {arg}".rstrip())
        return handler(arg) is not False

    def run(self):
        self.say(BANNER)
        self.say()
        self.say(HELP)
        try:
            while True:
                try:
                    line = self.input_func(self.prompt)
                except EOFError:
                    self.say()
                    break
                if not self.dispatch(line):
                    return
            self.do_quit("")
        except KeyboardInterrupt:
            self.say()
            self.do_quit("")

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def do_start(self, arg):
        if not arg:
            minutes = DEFAULT_SESSION_MINUTES
        else:
            try:
                minutes = int(arg)
            except ValueError:
                self.say("Please specify a valid duration in minutes")
                return
        self.session.start(minutes)

    def do_stop(self, arg):
        if not self.session.stop():
            if not self.session.active:
                self.say("No active session")

    def do_add(self, arg):
        self.session.add(arg)

    def do_remove(self, arg):
        self.session.remove(arg)

    def do_list(self, arg):
        self.session.list()

    def do_status(self, arg):
        self.say(self.session.status())

    def do_test(self, arg):
        self.session.test()

    def do_help(self, arg):
        self.say(HELP)

    def do_quit(self, arg):
        self.session.stop()
        self.say("Goodbye!")
        return False
