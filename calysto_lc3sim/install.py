import json
import os
import sys
from tempfile import TemporaryDirectory

from jupyter_client.kernelspec import KernelSpecManager

kernel_json = {
    "argv": [
        sys.executable,
        "-m", "calysto_lc3sim",
        "-f", "{connection_file}"
    ],
    "display_name": "Calysto LC3 Simulator",
    "language": "lc3obj",
}

def install_my_kernel_spec(user=True, prefix=None):
    with TemporaryDirectory() as td:
        os.chmod(td, 0o755) # Starts off as 700, not user readable
        with open(os.path.join(td, 'kernel.json'), 'w') as f:
            json.dump(kernel_json, f, sort_keys=True)

        print('Installing Jupyter kernel spec')
        KernelSpecManager().install_kernel_spec(
            td, 'calysto_lc3sim', user=user, prefix=prefix)

def main(argv=None):
    if argv is None:
        argv = sys.argv[1:]
    if "--sys-prefix" in argv:
        install_my_kernel_spec(user=False, prefix=sys.prefix)
    else:
        install_my_kernel_spec()

if __name__ == '__main__':
    main()
