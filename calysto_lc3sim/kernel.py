from metakernel import MetaKernel

from .lc3 import LC3
from ._version import __version__

class CalystoLC3Sim(MetaKernel):
    implementation = 'LC3 Simulator'
    implementation_version = __version__
    language = 'Calysto LC3 Simulator'
    language_version = '0.1'
    banner = "Calysto Little Computer 3 - machine code simulator for the LC3"
    language_info = {
        'name': 'lc3obj',
        'mimetype': 'text/plain',
        'file_extension': '.hex',
    }
    directives = ["%bp", "%cont", "%d", "%dis", "%dump", "%exe", "%load",
                  "%mem", "%pc", "%reg", "%regs", "%reset", "%step", "%warn"]

    def __init__(self, *args, **kwargs):
        super(CalystoLC3Sim, self).__init__(*args, **kwargs)
        self.lc3 = LC3(self)

    def get_usage(self):
        return """This is the Calysto LC3 Simulator Jupyter kernel.

A cell is either a directive, or an object block written one word per
line: the load address first, then the words, in hex (x3000) or binary
(0001 000 000 1 00101). Use ; for comments.

LC3 Interactive Magic Directives:

 %load FILE.obj [FILE.obj ...]      - load binary object files
 %bp [clear | HEXLOCATION]          - show, clear, or set breakpoints
 %cont                              - continue running
 %d                                 - toggle instruction tracing
 %dis [STARTHEX [STOPHEX]]          - dump memory as program
 %dump [STARTHEX [STOPHEX]]         - list memory in hex
 %exe                               - execute the last loaded block
 %mem HEXLOCATION HEXVALUE          - set memory
 %pc HEXVALUE                       - set PC
 %reg REG HEXVALUE                  - set register REG to HEXVALUE
 %regs                              - show registers
 %reset                             - reset LC3 to start state
 %step                              - execute the next instruction, increment PC
 %warn 0|1                          - warn when a NOOP is executed

HEX values begin with an 'x' and are composed of 4 0-F digits or letters.

To get additional help on these items, use '%help %item'.
"""

    def get_completions(self, info):
        token = info["help_obj"]
        matches = []
        for item in self.directives:
            if item.startswith(token) and item not in matches:
                matches.append(item)
        return matches

    def get_kernel_help_on(self, info, level=0, none_on_fail=False):
        expr = info["code"]
        if expr == "%load":
            return """%load - Load object files

Each file starts with its big-endian load address; the PC is set to
the load address of the last file:
    %load lc3os.obj program.obj
"""
        elif expr == "%bp":
            return """%bp - See, clear, or set a breakpoint.
See all of the breakpoints:
    %bp

Clear all of the breakpoints:
    %bp clear

Create a breakpoint at location x3005:
    %bp x3005
"""
        elif expr == "%cont":
            return """%cont - Continue executing the program
"""
        elif expr == "%d":
            return """%d - Toggle tracing of each executed instruction
"""
        elif expr == "%dis":
            return """%dis - Disassemble memory
"""
        elif expr == "%dump":
            return """%dump - Dump memory
"""
        elif expr == "%exe":
            return """%exe - Power on and execute from the last load address
"""
        elif expr == "%mem":
            return """%mem - Set a memory location
"""
        elif expr == "%pc":
            return """%pc - Set the Program Counter
"""
        elif expr == "%reg":
            return """%reg - Set a register
"""
        elif expr == "%regs":
            return """%regs - See the registers
"""
        elif expr == "%reset":
            return """%reset - Reset the LC3
"""
        elif expr == "%step":
            return """%step - Execute the next instruction
"""
        elif expr == "%warn":
            return """%warn - Turn NOOP warnings on (1) or off (0)
"""
        elif none_on_fail:
            return None
        else:
            return "No available help on '%s'" % expr

    def do_execute_file(self, filename):
        self.lc3.execute("%load " + filename)

    def do_execute_direct(self, code):
        try:
            self.lc3.execute(code.rstrip())
        except Exception as exc:
            self.Error(str(exc))
        except KeyboardInterrupt:
            self.Error("Keyboard Interrupt!")

    def do_is_complete(self, code):
        if code:
            if code.split()[-1].strip() != "":
                return {'status' : 'incomplete',
                        'indent': '    '}
            else:
                return {'status' : 'complete'}
        else:
            return {'status' : 'incomplete'}

    def repr(self, data):
        return repr(data)
